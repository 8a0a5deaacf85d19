"""fal.ai storage uploads."""

import logging
from typing import Optional

import httpx

from services.credentials import CredentialProvider
from services.errors import StorageError
from services.extraction import UPLOAD_URL_RULES, first_match, is_valid_asset_url
from services.providers.base import AssetStorage, HttpProvider

logger = logging.getLogger(__name__)

FAL_STORAGE_UPLOAD_URL = "https://fal.run/storage/upload"


class FalStorage(HttpProvider, AssetStorage):
    """Uploads blobs to fal.ai storage so FFmpeg jobs can fetch them."""

    name = "fal.ai storage"
    credential = "fal"
    auth_error_statuses = (401, 403)

    def __init__(
        self,
        credentials: CredentialProvider,
        client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(credentials, client=client, timeout=120.0)

    async def upload(self, data: bytes, file_name: str, content_type: str) -> str:
        headers = {"Authorization": f"Key {self._api_key()}"}
        files = {"file": (file_name, data, content_type)}

        try:
            response = await self.client.post(FAL_STORAGE_UPLOAD_URL, headers=headers, files=files)
        except httpx.HTTPError as e:
            raise StorageError(f"fal.ai storage upload failed: {e}", provider=self.name)

        self._check_auth(response)
        if not response.is_success:
            raise StorageError(
                f"Fal.ai Storage Error ({response.status_code}): {response.text[:200]}",
                provider=self.name,
            )

        try:
            url = first_match(response.json(), UPLOAD_URL_RULES)
        except ValueError:
            url = None
        if not is_valid_asset_url(url):
            raise StorageError(f"fal.ai storage returned no usable URL for {file_name}", provider=self.name)

        logger.info(f"Uploaded {file_name} to fal.ai storage ({len(data)} bytes)")
        return url

