#!/usr/bin/env python3
"""CLI for turning a history topic into a master video.

Usage:
    # Research, script, render and stitch
    python -m cli.render_topic "The Great Emu War"

    # Only write the script and show the scene table
    python -m cli.render_topic "The Great Emu War" --script-only

    # Resume from a saved script (re-uses finished scenes and in-flight job ids)
    python -m cli.render_topic --script output/emu-war.json

    # Also write YouTube / Instagram titles and captions
    python -m cli.render_topic "The Great Emu War" --metadata
"""

import argparse
import asyncio
import json
import re
import sys
from pathlib import Path

# Add src to path for imports
src_path = Path(__file__).parent.parent
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from rich.console import Console
from rich.table import Table

from models.script import Script, SceneUpdate, VideoEngine
from services.errors import SceneRenderError, StudioError
from services.script_contract import parse_script
from studio import HistoriStudio
from utils.config import load_config, validate_config
from utils.logging import clear_project_context, set_project_context, setup_logging
from utils.progress import ProgressChannel, ProgressEvent


console = Console()


def slugify(text: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-") or "script"


def print_progress(event: ProgressEvent) -> None:
    if event.warning:
        console.print(f"[yellow]⚠ {event.message}[/yellow]")
    else:
        console.print(f"[dim]{event.message}[/dim]")


def show_scenes(script: Script) -> None:
    """Display the script's scenes as a table."""
    table = Table(title=script.topic)
    table.add_column("#", justify="right")
    table.add_column("Time", style="cyan")
    table.add_column("Text")
    table.add_column("Type")
    table.add_column("Asset", style="green")

    for index, scene in enumerate(script.scenes, start=1):
        table.add_row(
            str(index),
            scene.timestamp,
            scene.text[:60],
            scene.asset_type.value,
            scene.asset_url or (f"job {scene.provider_job_id}" if scene.provider_job_id else "-"),
        )

    console.print(table)


def load_script(path: Path) -> Script:
    """Load a script saved by this CLI, keeping asset fields."""
    data = json.loads(path.read_text())
    script = parse_script(json.dumps(data), narration_enabled=bool(data.get("narrationEnabled")))
    saved = {scene["id"]: scene for scene in data["scenes"]}
    updates = [
        SceneUpdate(
            scene_id=scene.id,
            asset_url=saved[scene.id].get("assetUrl"),
            provider_job_id=saved[scene.id].get("providerJobId"),
            audio_url=saved[scene.id].get("audioUrl"),
            rendered_prompt=saved[scene.id].get("renderedPrompt"),
            engine=VideoEngine(saved[scene.id]["engine"]) if saved[scene.id].get("engine") else None,
        )
        for scene in script.scenes
    ]
    return script.apply_updates(updates)


def save_script(script: Script, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(script.to_dict(), indent=2))


async def run(args: argparse.Namespace) -> int:
    config = load_config()
    errors = validate_config(config)
    if errors:
        for error in errors:
            console.print(f"[red]✗ {error}[/red]")
        return 1

    progress = ProgressChannel([print_progress])
    studio = HistoriStudio.from_config(config, progress=progress)

    try:
        if args.script:
            script_path = Path(args.script)
            script = load_script(script_path)
        else:
            console.print(f"\n[bold blue]Researching: {args.topic}[/bold blue]")
            script = await studio.create_script(args.topic)
            script_path = Path(args.output) / f"{slugify(script.topic)}.json"
            save_script(script, script_path)

        set_project_context(slugify(script.topic))
        show_scenes(script)
        if args.script_only:
            console.print(f"[dim]Script saved to {script_path}[/dim]")
            return 0

        # Persist job ids and finished scenes as they arrive so a rerun resumes
        def on_job_id(scene_id: str, job_id: str, engine: VideoEngine) -> None:
            nonlocal script
            script = script.apply_updates(
                [SceneUpdate(scene_id=scene_id, provider_job_id=job_id, engine=engine)]
            )
            save_script(script, script_path)

        def on_scene_update(update: SceneUpdate) -> None:
            nonlocal script
            script = script.apply_updates([update])
            save_script(script, script_path)

        script, master = await studio.assemble_master(
            script, on_scene_update=on_scene_update, on_job_id=on_job_id
        )
        save_script(script, script_path)

        metadata = None
        if args.metadata:
            metadata = await studio.social_metadata(script)
            metadata_path = script_path.with_suffix(".social.json")
            metadata_path.write_text(json.dumps(metadata.to_dict(), indent=2))

    except SceneRenderError as e:
        console.print(f"[red]✗ {e}[/red]")
        if e.needs_reauth:
            console.print("[yellow]The API key was rejected. Update it and rerun.[/yellow]")
        return 1
    except StudioError as e:
        console.print(f"[red]✗ {e}[/red]")
        return 1
    finally:
        await studio.close()
        clear_project_context()

    show_scenes(script)
    console.print(f"\n[bold green]✓ Master video ({master.scene_count} scenes): {master.url}[/bold green]")
    if metadata is not None:
        console.print(f"[bold]{metadata.youtube_title}[/bold]")
        console.print(metadata.instagram_caption)
        console.print(f"[dim]Post copy saved to {metadata_path}[/dim]")
    return 0


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Turn a history topic into a narrated short-form master video",
    )
    parser.add_argument("topic", nargs="?", help="Historical topic to research")
    parser.add_argument("--script", type=str, help="Resume from a saved script JSON file")
    parser.add_argument(
        "--script-only",
        action="store_true",
        help="Stop after writing the script",
    )
    parser.add_argument(
        "--metadata",
        action="store_true",
        help="Also write YouTube and Instagram post copy for the finished video",
    )
    parser.add_argument(
        "--output",
        type=str,
        default="output",
        help="Directory for saved scripts (default: output)",
    )
    args = parser.parse_args()

    if not args.topic and not args.script:
        parser.error("either a topic or --script is required")

    config = load_config()
    setup_logging(config["log_level"], json_output=config["log_json"])
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
