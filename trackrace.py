import os
import sys
import json
import argparse

try:
    from rich.console import Console
    from rich.table import Table
    from rich.panel import Panel
    from rich.progress import Progress, SpinnerColumn, BarColumn, TextColumn
    from rich import box
    from rich.markup import escape
except ImportError:
    print("Error: The 'rich' library is required for the CLI but not installed.", file=sys.stderr)
    print("Please install it with: pip install trackrace[cli]", file=sys.stderr)
    sys.exit(1)

from trackracelib import __version__
from trackracelib.config import ConfigError, default_config, merge_configs
from trackracelib.events import EventBus, TRACK_LOADED
from trackracelib.models import TrackLoadError
from trackracelib.registry import TrackRegistry
from trackracelib.utils import format_elapsed, track_color_hex

console = Console()


def positive_int(value):
    ivalue = int(value)
    if ivalue <= 0:
        raise argparse.ArgumentTypeError("must be a positive integer")
    return ivalue


def unit_float(value):
    fvalue = float(value)
    if not 0.0 <= fvalue <= 1.0:
        raise argparse.ArgumentTypeError("must be between 0 and 1")
    return fvalue


def parse_arguments(argv=None):
    parser = argparse.ArgumentParser(
        description="TrackRace: replay GPS recordings against each other",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser.add_argument("--version", action="version",
                        version=f"trackrace {__version__}")

    parser.add_argument("files", nargs="+",
                        help="Parsed track files: JSON arrays of "
                             "{latitude, longitude, timestamp} records")

    parser.add_argument("--smooth", action="store_true",
                        help="Smooth tracks with a time-weighted moving average")
    parser.add_argument("--window", type=positive_int, default=5,
                        help="Smoothing window size (points)")

    parser.add_argument("--steps", type=positive_int, default=5,
                        help="Number of evenly spaced progress values to report "
                             "(0 and 1 included)")
    parser.add_argument("--progress", type=unit_float, action="append", default=None,
                        help="Report the race at this progress value (0-1). "
                             "May be repeated; overrides --steps.")

    return parser.parse_args(argv)


def load_records(path):
    """Read one parser dump: a JSON array of records, or an object whose
    ``samples`` key holds that array."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("samples")
    if not isinstance(data, list):
        raise TrackLoadError(f"{path}: expected a JSON array of sample records")
    return data


def progress_values(args):
    if args.progress:
        return list(args.progress)
    if args.steps == 1:
        return [0.0]
    return [i / (args.steps - 1) for i in range(args.steps)]


# ---------------------------------------------------------------------------
# Rich console rendering
# ---------------------------------------------------------------------------

def _swatch(track):
    return f"[{track_color_hex(track.color_index)}]■[/]"


def print_legend(registry):
    table = Table(box=box.ROUNDED, title="Tracks", title_justify="left")
    table.add_column("#", justify="right", style="dim")
    table.add_column("", justify="center")
    table.add_column("Track", style="cyan", max_width=40)
    table.add_column("Start", style="dim")
    table.add_column("Duration", justify="right")
    table.add_column("Points", justify="right")

    for i, t in enumerate(registry.tracks, start=1):
        duration = format_elapsed(t.duration) if t.duration is not None else "[yellow]static[/]"
        table.add_row(str(i), _swatch(t), t.filename, t.start_date,
                      duration, str(len(t.raw_samples)))
    console.print(table)


def print_race(registry, values):
    tracks = registry.tracks
    table = Table(box=box.ROUNDED, title="Race", title_justify="left")
    table.add_column("Progress", justify="right")
    table.add_column("Elapsed", justify="right", style="bold green")
    for t in tracks:
        table.add_column(f"{_swatch(t)} {t.filename}", max_width=28)

    for value in values:
        registry.set_progress(value)
        cells = []
        for t in tracks:
            pos = t.current_position
            if pos is None:
                cells.append("—")
            else:
                cells.append(f"{pos.latitude:.5f}, {pos.longitude:.5f}")
        table.add_row(f"{registry.progress:.0%}", registry.elapsed_label, *cells)
    console.print(table)


# ---------------------------------------------------------------------------
# main(): thin wrapper around the trackracelib registry
# ---------------------------------------------------------------------------

def main(argv=None):
    args = parse_arguments(argv)

    config = merge_configs(default_config(), {
        "smoothing_enabled": args.smooth,
        "smoothing_window": args.window,
    })

    console.print(Panel.fit(
        f"[bold]TrackRace[/]\n"
        f"Smoothing: [cyan]{'on' if args.smooth else 'off'}[/]"
        + (f" | Window: [cyan]{args.window} points[/]" if args.smooth else ""),
        title="Configuration"
    ))

    event_bus = EventBus()
    try:
        registry = TrackRegistry(config=config, event_bus=event_bus)
    except ConfigError as e:
        console.print(f"[bold red]Error:[/] {escape(str(e))}")
        return 1

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("{task.completed}/{task.total}"),
        console=console,
    ) as progress:
        task_id = progress.add_task("[cyan]Loading tracks...", total=len(args.files))

        def on_track_loaded(**data):
            progress.advance(task_id)
        event_bus.subscribe(TRACK_LOADED, on_track_loaded)

        for path in args.files:
            name = os.path.basename(path)
            try:
                registry.load(name, load_records(path))
            except (OSError, json.JSONDecodeError, TrackLoadError) as e:
                progress.advance(task_id)
                console.print(f"[bold red]Error:[/] {escape(name)}: {escape(str(e))}")

        event_bus.unsubscribe(TRACK_LOADED, on_track_loaded)

    if not len(registry):
        console.print("[red]No tracks loaded.[/]")
        return 1

    console.print("")
    print_legend(registry)

    if registry.max_duration is None:
        console.print("[yellow]No track has usable timestamps; "
                      "positions stay at each track's start.[/]")

    console.print("")
    print_race(registry, progress_values(args))
    return 0


if __name__ == "__main__":
    sys.exit(main())
