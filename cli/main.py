#!/usr/bin/env python3
"""
Video Boomerang CLI - create a boomerang clip from a local video file.
"""
import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, TextColumn, TimeElapsedColumn

from api.utils.logger import setup_logging
from worker import __version__
from worker.errors import BoomerangError, ErrorKind
from worker.models import BoomerangResult, ProcessingOptions, ProcessingProgress, Quality
from worker.processors.boomerang import BoomerangProcessor
from worker.utils.files import (
    SUPPORTED_EXTENSIONS,
    format_duration,
    format_file_size,
    generate_output_path,
)

console = Console()
err_console = Console(stderr=True)

FFMPEG_HELP = """FFmpeg is required. Install it with:
  macOS:          brew install ffmpeg
  Ubuntu/Debian:  sudo apt install ffmpeg
  Windows:        download from https://ffmpeg.org/download.html"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="boomerang",
        description="Create a boomerang video: the clip plays forward, then in reverse.",
    )
    parser.add_argument("input", help="Input video file")
    parser.add_argument("-o", "--output", help="Output file (default: <input>_boomerang.<ext>)")
    parser.add_argument(
        "-q", "--quality",
        choices=[q.value for q in Quality],
        default=Quality.MEDIUM.value,
        help="Output quality (default: medium)",
    )
    parser.add_argument("-f", "--fps", type=float, help="Output frame rate")
    parser.add_argument(
        "-d", "--max-duration", type=float,
        help="Use at most this many seconds of the input",
    )
    parser.add_argument(
        "-a", "--preserve-audio", action="store_true",
        help="Keep the audio track (reversed in the second half)",
    )
    parser.add_argument("-t", "--temp-dir", help="Directory for intermediate files")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    parser.add_argument("--no-progress", action="store_true", help="Hide the progress bar")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def build_options(args: argparse.Namespace) -> ProcessingOptions:
    return ProcessingOptions(
        input=Path(args.input),
        output=Path(args.output) if args.output else None,
        quality=Quality(args.quality),
        fps=args.fps,
        max_duration=args.max_duration,
        preserve_audio=args.preserve_audio,
        temp_dir=Path(args.temp_dir) if args.temp_dir else None,
        verbose=args.verbose,
    )


def print_summary(options: ProcessingOptions) -> None:
    console.print(Panel.fit("[bold cyan]Video Boomerang[/bold cyan]", subtitle=f"v{__version__}"))
    size = format_file_size(options.input.stat().st_size)
    console.print(f"[bold]Input:[/bold]    {options.input} ({size})")
    console.print(f"[bold]Output:[/bold]   {generate_output_path(options.input, options.output)}")
    console.print(f"[bold]Quality:[/bold]  {options.quality.value}")
    if options.max_duration:
        console.print(f"[bold]Max duration:[/bold] {format_duration(options.max_duration)}")
    if options.fps:
        console.print(f"[bold]Frame rate:[/bold] {options.fps:g} fps")
    console.print(f"[bold]Audio:[/bold]    {'preserved' if options.preserve_audio else 'removed'}")
    console.print()


def print_success(result: BoomerangResult, options: ProcessingOptions) -> None:
    metadata = result.metadata
    console.print("\n[green]✓ Boomerang created successfully![/green]\n")
    console.print(f"[bold]Output:[/bold]          {result.output_path}")
    if metadata is not None:
        processed = metadata.duration
        if options.max_duration and processed > options.max_duration:
            processed = options.max_duration
        console.print(f"[bold]Dimensions:[/bold]      {metadata.dimensions}")
        console.print(f"[bold]Frame rate:[/bold]      {metadata.fps_label} fps")
        console.print(f"[bold]Duration:[/bold]        {format_duration(processed * 2)}")
    console.print(f"[bold]Processing time:[/bold] {result.processing_time / 1000:.1f}s")
    if result.output_path is not None and result.output_path.exists():
        console.print(f"[bold]Output size:[/bold]     {format_file_size(result.output_path.stat().st_size)}")


def print_error(error: BoomerangError) -> None:
    err_console.print(f"\n[red]✗ Error:[/red] {error.message}", soft_wrap=True)
    if error.kind is ErrorKind.FFMPEG_ERROR:
        err_console.print(f"\n[yellow]{FFMPEG_HELP}[/yellow]")
    elif error.kind is ErrorKind.UNSUPPORTED_FORMAT:
        err_console.print(f"\n[yellow]Supported formats: {', '.join(SUPPORTED_EXTENSIONS)}[/yellow]")


async def run(options: ProcessingOptions, show_progress: bool) -> BoomerangResult:
    processor = BoomerangProcessor(options)
    if not show_progress:
        return await processor.process()

    with Progress(
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("{task.percentage:>3.0f}%"),
        TimeElapsedColumn(),
        console=console,
        transient=False,
    ) as progress:
        task = progress.add_task("Starting...", total=100)

        def on_progress(event: ProcessingProgress) -> None:
            progress.update(task, completed=event.progress, description=event.current_step)

        processor.set_observer(on_progress)
        return await processor.process()


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the boomerang CLI."""
    args = build_parser().parse_args(argv)

    setup_logging("DEBUG" if args.verbose else "WARNING", json_logs=False, stream=sys.stderr)

    if not Path(args.input).exists():
        err_console.print(f'[red]✗ Error:[/red] Input file "{args.input}" does not exist', soft_wrap=True)
        return 1

    try:
        options = build_options(args)
    except ValidationError as e:
        for error in e.errors():
            field = ".".join(str(part) for part in error["loc"])
            err_console.print(f"[red]✗ Error:[/red] {field}: {error['msg']}")
        return 1

    print_summary(options)
    result = asyncio.run(run(options, show_progress=not args.no_progress))

    if not result.success:
        print_error(result.error)
        return 1

    print_success(result, options)
    return 0


if __name__ == "__main__":
    sys.exit(main())
