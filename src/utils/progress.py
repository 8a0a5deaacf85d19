"""Progress reporting for long-running generation work.

Progress is advisory: observers are notified in registration order and an
observer that raises is logged and skipped, never allowed to fail the job.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

logger = logging.getLogger(__name__)


@dataclass
class ProgressEvent:
    """A single progress message."""

    message: str
    elapsed_seconds: float = 0.0
    warning: bool = False
    scene_id: Optional[str] = None
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "message": self.message,
            "elapsed_seconds": round(self.elapsed_seconds, 1),
            "warning": self.warning,
            "scene_id": self.scene_id,
            "timestamp": self.timestamp,
        }


ProgressObserver = Callable[[ProgressEvent], None]


class ProgressChannel:
    """Fans progress events out to any number of observers.

    Example usage:
        channel = ProgressChannel()
        channel.subscribe(lambda event: print(event.message))
        channel.subscribe(logging_observer)

        channel.emit("Scene 1: submitting job")
        channel.warn("Narration skipped: no Cartesia voice configured")
    """

    def __init__(self, observers: Optional[list[ProgressObserver]] = None):
        self._observers: list[ProgressObserver] = list(observers or [])
        self._start_time = time.time()
        self.history: list[ProgressEvent] = []

    @property
    def elapsed_time(self) -> float:
        """Seconds since the channel was created or last reset."""
        return time.time() - self._start_time

    def reset(self) -> None:
        self._start_time = time.time()
        self.history.clear()

    def subscribe(self, observer: ProgressObserver) -> None:
        """Register an observer."""
        self._observers.append(observer)

    def unsubscribe(self, observer: ProgressObserver) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    def emit(
        self,
        message: str,
        elapsed_seconds: Optional[float] = None,
        scene_id: Optional[str] = None,
    ) -> ProgressEvent:
        """Send a progress message to every observer."""
        return self._publish(
            ProgressEvent(
                message=message,
                elapsed_seconds=self.elapsed_time if elapsed_seconds is None else elapsed_seconds,
                scene_id=scene_id,
            )
        )

    def warn(self, message: str, scene_id: Optional[str] = None) -> ProgressEvent:
        """Send a non-fatal warning to every observer."""
        return self._publish(
            ProgressEvent(
                message=message,
                elapsed_seconds=self.elapsed_time,
                warning=True,
                scene_id=scene_id,
            )
        )

    @property
    def warnings(self) -> list[str]:
        return [event.message for event in self.history if event.warning]

    def _publish(self, event: ProgressEvent) -> ProgressEvent:
        self.history.append(event)
        for observer in list(self._observers):
            try:
                observer(event)
            except Exception as e:
                logger.warning(f"Progress observer failed: {e}")
        return event


def logging_observer(event: ProgressEvent) -> None:
    """Observer that writes progress events to the module logger."""
    prefix = f"[{event.scene_id}] " if event.scene_id else ""
    if event.warning:
        logger.warning(f"{prefix}{event.message}")
    else:
        logger.info(f"{prefix}{event.message} ({event.elapsed_seconds:.0f}s)")
