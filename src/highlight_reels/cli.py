"""Command-line interface for highlight-reels.

Uses Typer for a modern, type-hinted CLI experience.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Annotated, Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape

# Load environment variables from .env files
# Priority: local .env > ~/.highlight-reels/.env
_user_env = Path.home() / ".highlight-reels" / ".env"
if _user_env.exists():
    load_dotenv(_user_env)
load_dotenv()  # Load local .env (overrides user-level)
from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn, TaskProgressColumn
from rich.table import Table

from highlight_reels import __version__
from highlight_reels.config import RenderConfig, load_render_config
from highlight_reels.errors import (
    ConfigurationError,
    NoValidSegmentsError,
    RenderEngineError,
    ResourceError,
    TranscriptionError,
    ValidationError,
    format_error_for_display,
)
from highlight_reels.ffmpeg_binary import FFmpegConfig, get_ffmpeg_info, verify_ffmpeg
from highlight_reels.logging import LogContext, LogLevel, enable_file_logging, set_verbosity
from highlight_reels.models.clip import RenderResult
from highlight_reels.pipeline import ClipRenderer
from highlight_reels.segments import load_segments

# Create the main Typer app
app = typer.Typer(
    name="highlight-reels",
    help="Render highlight segments of a video into vertical, captioned social clips.",
    add_completion=False,
    rich_markup_mode="rich",
)

console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"highlight-reels version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """Highlight Reels - vertical social clips from highlight segments.

    [bold]render[/bold]: Crop, caption and encode each segment of a source video.

    [bold]check[/bold]: Verify that FFmpeg is available.
    """
    pass


def _build_config(
    config_path: Path | None,
    output_dir: Path | None,
    temp_dir: Path | None,
    ffmpeg_path: Path | None,
    no_captions: bool,
    require_timed: bool,
    estimate_only: bool,
    keep_source: bool,
    continue_on_error: bool,
    workers: int | None,
) -> RenderConfig:
    """Load the config file, if any, and apply command-line overrides."""
    config = load_render_config(config_path) if config_path else RenderConfig()

    updates: dict = {}
    if output_dir is not None:
        updates["output_dir"] = output_dir
    if temp_dir is not None:
        updates["temp_dir"] = temp_dir
    if keep_source:
        updates["delete_source"] = False
    if continue_on_error:
        updates["failure_policy"] = "continue"
    if workers is not None:
        updates["max_workers"] = workers
    if ffmpeg_path is not None:
        updates["ffmpeg"] = config.ffmpeg.model_copy(
            update={"custom_ffmpeg_path": str(ffmpeg_path)}
        )

    caption_updates: dict = {}
    if no_captions:
        caption_updates["enabled"] = False
    if require_timed:
        caption_updates["require_timed"] = True
    if estimate_only:
        caption_updates["estimate_only"] = True
    if caption_updates:
        updates["captions"] = config.captions.model_copy(update=caption_updates)

    # Round-trip through validation so overrides are checked like file values
    return RenderConfig(**{**config.model_dump(), **updates})


def _print_result(result: RenderResult) -> None:
    table = Table(title=f"Rendered Clips (job {result.job_id})")
    table.add_column("#", style="dim")
    table.add_column("Range")
    table.add_column("Captions")
    table.add_column("Reason")
    table.add_column("File", style="cyan")

    for clip in result.clips:
        table.add_row(
            str(clip.id),
            f"{clip.start:.1f}-{clip.end:.1f}s",
            clip.caption_mode.value,
            clip.reason[:50] + ("..." if len(clip.reason) > 50 else ""),
            str(clip.path),
        )

    console.print(table)

    if result.rejected:
        console.print(f"[yellow]{len(result.rejected)} segment(s) rejected as too short[/yellow]")

    for failure in result.failures:
        console.print(f"[red]Segment {failure.index} failed:[/red] {escape(failure.error)}")


@app.command()
def render(
    source: Annotated[Path, typer.Argument(help="Source video file")],
    segments_file: Annotated[
        Path,
        typer.Argument(help="JSON file with a list of {start, end, reason, transcription}"),
    ],
    output_dir: Annotated[
        Optional[Path],
        typer.Option("--output-dir", "-o", help="Directory for rendered clips"),
    ] = None,
    temp_dir: Annotated[
        Optional[Path],
        typer.Option("--temp-dir", help="Directory for working files"),
    ] = None,
    config_path: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="Render config JSON file"),
    ] = None,
    ffmpeg_path: Annotated[
        Optional[Path],
        typer.Option("--ffmpeg", help="Path to the FFmpeg executable"),
    ] = None,
    no_captions: Annotated[
        bool,
        typer.Option("--no-captions", help="Render without captions"),
    ] = False,
    require_timed: Annotated[
        bool,
        typer.Option("--require-timed-captions", help="Fail instead of falling back to static captions"),
    ] = False,
    estimate_only: Annotated[
        bool,
        typer.Option("--estimate-only", help="Estimate caption timing without a transcription API"),
    ] = False,
    keep_source: Annotated[
        bool,
        typer.Option("--keep-source", help="Do not delete the source video afterwards"),
    ] = False,
    continue_on_error: Annotated[
        bool,
        typer.Option("--continue-on-error", help="Keep rendering after a segment fails"),
    ] = False,
    workers: Annotated[
        Optional[int],
        typer.Option("--workers", "-w", min=1, help="Segments rendered at once (default 1)"),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show debug logging"),
    ] = False,
    log_file: Annotated[
        Optional[Path],
        typer.Option("--log-file", help="Also write debug logs to this file"),
    ] = None,
) -> None:
    """Render each highlight segment of SOURCE into a vertical captioned clip."""
    set_verbosity(LogLevel.DEBUG if verbose else LogLevel.NORMAL)
    if log_file:
        enable_file_logging(log_file)

    if not source.exists():
        console.print(f"[red]Error:[/red] Source video not found: {source}")
        raise typer.Exit(1)

    try:
        segments = load_segments(segments_file)
        config = _build_config(
            config_path,
            output_dir,
            temp_dir,
            ffmpeg_path,
            no_captions,
            require_timed,
            estimate_only,
            keep_source,
            continue_on_error,
            workers,
        )
    except FileNotFoundError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)
    except (ValidationError, ConfigurationError, ValueError) as e:
        console.print(f"[red]Error:[/red] {escape(format_error_for_display(e))}")
        raise typer.Exit(1)

    captions = config.captions
    if captions.enabled and not captions.estimate_only and not os.environ.get("OPENAI_API_KEY"):
        console.print(
            "[yellow]Warning:[/yellow] OPENAI_API_KEY not set, caption timing will be estimated."
        )

    console.print(f"[cyan]Rendering {len(segments)} segment(s) from[/cyan] {source.name}")

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=console,
    ) as progress_bar:
        task = progress_bar.add_task("Rendering...", total=1.0)

        def on_progress(stage: str, fraction: float) -> None:
            progress_bar.update(task, completed=fraction, description=f"{stage.capitalize()}...")

        try:
            renderer = ClipRenderer(config, progress_callback=on_progress)
            with LogContext(video=source.name):
                result = renderer.render_highlights(source, segments)
        except NoValidSegmentsError as e:
            progress_bar.stop()
            console.print(f"[red]Error:[/red] {escape(format_error_for_display(e))}")
            raise typer.Exit(1)
        except RenderEngineError as e:
            progress_bar.stop()
            console.print(f"[red]Render failed:[/red] {escape(format_error_for_display(e))}")
            if e.completed:
                console.print(f"[yellow]{len(e.completed)} clip(s) were rendered before the failure:[/yellow]")
                for clip in e.completed:
                    console.print(f"  {clip.path}")
            raise typer.Exit(1)
        except (TranscriptionError, ResourceError) as e:
            progress_bar.stop()
            console.print(f"[red]Error:[/red] {escape(format_error_for_display(e))}")
            raise typer.Exit(1)

    _print_result(result)

    if verbose:
        console.print_json(json.dumps(result.to_dict()))

    if not result.complete:
        raise typer.Exit(1)


@app.command()
def check(
    ffmpeg_path: Annotated[
        Optional[Path],
        typer.Option("--ffmpeg", help="Path to the FFmpeg executable"),
    ] = None,
) -> None:
    """Check that FFmpeg and the transcription API key are available."""
    ffmpeg_config = FFmpegConfig(custom_ffmpeg_path=str(ffmpeg_path) if ffmpeg_path else None)
    ffmpeg_info = get_ffmpeg_info(ffmpeg_config)
    success, message = verify_ffmpeg(ffmpeg_config)

    table = Table(title="Dependencies")
    table.add_column("Component", style="cyan")
    table.add_column("Status")
    table.add_column("Details")

    if ffmpeg_info.available:
        table.add_row(
            "FFmpeg",
            "[green]Available[/green]" if success else "[red]Broken[/red]",
            f"v{ffmpeg_info.version} ({ffmpeg_info.source})\n{ffmpeg_info.path}",
        )
    else:
        table.add_row("FFmpeg", "[red]Not found[/red]", "Install with: pip install imageio-ffmpeg")

    if os.environ.get("OPENAI_API_KEY"):
        table.add_row("OPENAI_API_KEY", "[green]Set[/green]", "Timed captions via Whisper API")
    else:
        table.add_row("OPENAI_API_KEY", "[yellow]Not set[/yellow]", "Caption timing will be estimated")

    console.print(table)

    if not success:
        console.print(f"[red]Error:[/red] {message}")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
