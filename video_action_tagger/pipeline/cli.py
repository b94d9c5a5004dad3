"""CLI-facing batch tagging orchestration."""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Sequence
from contextlib import nullcontext
from pathlib import Path

import typer
from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from video_action_tagger.classifier.base import Classifier, ClassifierError
from video_action_tagger.config import MergeConfig, OutputConfig, UIConfig, WindowConfig
from video_action_tagger.formatting import DEFAULT_FORMATS, get_formatter_spec
from video_action_tagger.pipeline.file_processor import tag_file
from video_action_tagger.pipeline.utils import compute_total_windows
from video_action_tagger.utils.cancel import get_cancel_event, install_signal_handlers
from video_action_tagger.utils.constant import (
    CLASSIFIER_ACTIVATION,
    DEFAULT_FRAME_SIZE,
    DEFAULT_MIN_SEGMENT_SEC,
    DEFAULT_SAMPLES_PER_WINDOW,
    DEFAULT_STRIDE_SEC,
    DEFAULT_THRESHOLD,
    DEFAULT_WINDOW_SEC,
)
from video_action_tagger.utils.logging_config import configure_logging
from video_action_tagger.video.source import VideoDecodeError

logger = logging.getLogger(__name__)


def _display_settings(  # pragma: no cover - formatting helper
    video_files: Sequence[Path],
    model_path: Path | None,
    output_config: OutputConfig,
    window_config: WindowConfig,
    merge_config: MergeConfig,
    ui_config: UIConfig,
) -> None:
    """Render the effective configuration as a Rich table."""
    console = Console()
    table = Table(title="CLI Settings", show_header=True, header_style="bold magenta")
    table.add_column("Category", style="cyan", no_wrap=True)
    table.add_column("Setting", style="green")
    table.add_column("Value", style="yellow")

    table.add_row("Model", "Model Path", str(model_path) if model_path else "(injected)")
    table.add_row("Output", "Output Directory", str(output_config.output_dir))
    table.add_row("Output", "Formats", ", ".join(output_config.output_formats))
    table.add_row("Output", "Output Template", output_config.output_template)
    table.add_row("Output", "Overwrite", str(output_config.overwrite))
    table.add_row("Output", "File Tags", str(output_config.write_tags))

    table.add_row("Windows", "Window Length (s)", str(window_config.window_sec))
    table.add_row("Windows", "Stride (s)", str(window_config.stride_sec))
    table.add_row("Windows", "Samples / Window", str(window_config.samples_per_window))
    table.add_row("Windows", "Workers", str(window_config.workers))

    table.add_row("Merge", "Threshold", str(merge_config.threshold))
    table.add_row("Merge", "Min Segment (s)", str(merge_config.min_segment_sec))

    table.add_row("UI", "No Progress", str(ui_config.no_progress))
    table.add_row("Files", "Tagging", f"{len(video_files)} file(s)")

    console.print(table)


def _load_classifier(
    model_path: Path | None, frame_size: int, activation: str, top_k: int | None
) -> Classifier:
    if model_path is None:
        typer.echo("Error: --model is required (or set ACTION_MODEL_PATH).", err=True)
        raise typer.Exit(code=1)
    from video_action_tagger.classifier.torchscript import (  # pylint: disable=import-outside-toplevel
        get_classifier,
    )

    try:
        return get_classifier(str(model_path), frame_size, activation, top_k)
    except (ClassifierError, ValueError) as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc


def _validate_settings(
    window_sec: float,
    stride_sec: float,
    samples_per_window: int,
    threshold: float,
    min_segment_sec: float,
    workers: int,
) -> None:
    """Reject settings the windowing and merging core cannot accept.

    Raises:
        typer.BadParameter: Naming the offending option.
    """
    if not (math.isfinite(window_sec) and window_sec > 0):
        raise typer.BadParameter(
            f"must be a finite number > 0, got {window_sec}", param_hint="--window"
        )
    if not (math.isfinite(stride_sec) and stride_sec > 0):
        raise typer.BadParameter(
            f"must be a finite number > 0, got {stride_sec}", param_hint="--stride"
        )
    if samples_per_window < 1:
        raise typer.BadParameter(
            f"must be >= 1, got {samples_per_window}", param_hint="--samples"
        )
    if not 0.0 <= threshold <= 1.0:
        raise typer.BadParameter(f"must lie in [0, 1], got {threshold}", param_hint="--threshold")
    if not min_segment_sec > 0:
        raise typer.BadParameter(
            f"must be > 0, got {min_segment_sec}", param_hint="--min-segment"
        )
    if workers < 1:
        raise typer.BadParameter(f"must be >= 1, got {workers}", param_hint="--workers")


def cli_tag(
    *,
    video_files: Sequence[Path],
    output_dir: Path,
    model_path: Path | None = None,
    classifier: Classifier | None = None,
    output_formats: Sequence[str] = DEFAULT_FORMATS,
    output_template: str = "{filename}",
    window_sec: float = DEFAULT_WINDOW_SEC,
    stride_sec: float = DEFAULT_STRIDE_SEC,
    samples_per_window: int = DEFAULT_SAMPLES_PER_WINDOW,
    threshold: float = DEFAULT_THRESHOLD,
    min_segment_sec: float = DEFAULT_MIN_SEGMENT_SEC,
    workers: int = 1,
    frame_size: int = DEFAULT_FRAME_SIZE,
    activation: str = CLASSIFIER_ACTIVATION,
    top_k: int | None = None,
    write_tags: bool = True,
    overwrite: bool = False,
    verbose: bool = False,
    quiet: bool = False,
    no_progress: bool = False,
) -> list[Path]:
    """
    Tag a batch of videos and return the paths of every written output file.

    Each video is processed independently: a video that cannot be decoded,
    whose classification fails, or whose outputs cannot be written is
    reported and skipped, and the batch continues. SIGINT/SIGTERM stop the
    run after the current windows drain; the interrupted video is still
    written with the segments found so far.

    Parameters:
        video_files (Sequence[Path]): Videos to tag.
        output_dir (Path): Directory to write output files.
        model_path (Path | None): TorchScript model; ignored when
            ``classifier`` is given.
        classifier (Classifier | None): Pre-built classifier to use instead of
            loading ``model_path``.
        output_formats (Sequence[str]): Output format identifiers.
        output_template (str): Filename template supporting ``{filename}``,
            ``{parent}``, ``{index}`` and ``{date}``.
        window_sec (float): Window length in seconds.
        stride_sec (float): Window stride in seconds.
        samples_per_window (int): Frames sampled per window.
        threshold (float): Detection threshold.
        min_segment_sec (float): Minimum kept segment length in seconds.
        workers (int): Classification threads.
        frame_size (int): Classifier input resolution.
        activation (str): Logit activation for the classifier.
        top_k (int | None): Keep only the k most probable labels per window.
        write_tags (bool): Attach labels to the videos as file tags.
        overwrite (bool): Overwrite existing output files.
        verbose (bool): Enable verbose logging.
        quiet (bool): Suppress non-error output.
        no_progress (bool): Disable progress display.

    Returns:
        list[Path]: Paths to the files created by the run.

    Raises:
        typer.Exit: If an output format is unknown or the model cannot be loaded.
    """
    configure_logging(verbose=verbose, quiet=quiet)
    if quiet:
        verbose = False
    _validate_settings(
        window_sec, stride_sec, samples_per_window, threshold, min_segment_sec, workers
    )

    try:
        formats = tuple(dict.fromkeys(f.lower() for f in output_formats))
        for format_name in formats:
            get_formatter_spec(format_name)
        output_template.format(filename="", index=0, parent="", date="")
    except KeyError as exc:
        typer.echo(f"Error: Unknown placeholder in --output-template: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    except ValueError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    window_config = WindowConfig(
        window_sec=window_sec,
        stride_sec=stride_sec,
        samples_per_window=samples_per_window,
        workers=workers,
    )
    merge_config = MergeConfig(threshold=threshold, min_segment_sec=min_segment_sec)
    output_config = OutputConfig(
        output_dir=output_dir,
        output_formats=formats,
        output_template=output_template,
        overwrite=overwrite,
        write_tags=write_tags,
    )
    ui_config = UIConfig(verbose=verbose, quiet=quiet, no_progress=no_progress)

    if not quiet:
        _display_settings(
            video_files, model_path, output_config, window_config, merge_config, ui_config
        )
        typer.echo()

    output_dir.mkdir(parents=True, exist_ok=True)

    t0 = time.perf_counter()
    if classifier is None:
        classifier = _load_classifier(model_path, frame_size, activation, top_k)

    cancel_event = get_cancel_event()
    install_signal_handlers(cancel_event)

    total_windows = 0 if no_progress else compute_total_windows(video_files, window_sec, stride_sec)
    logger.debug(f"[plan] videos={len(video_files)} total_windows={total_windows}")

    progress_cm = (
        nullcontext()
        if no_progress
        else Progress(
            SpinnerColumn(),
            BarColumn(bar_width=None),
            TaskProgressColumn(),
            TimeElapsedColumn(),
            TextColumn("[progress.description]{task.description}"),
            transient=False,
        )
    )

    created_files: list[Path] = []
    failed: list[Path] = []
    with progress_cm as progress:
        main_task = None if no_progress else progress.add_task("Tagging...", total=total_windows)
        for file_idx, video_path in enumerate(video_files, start=1):
            if cancel_event.is_set():
                logger.warning(f"Cancelled; skipping {len(video_files) - file_idx + 1} video(s)")
                break
            logger.info(f"Processing {video_path.name}")
            try:
                written = tag_file(
                    video_path,
                    classifier=classifier,
                    file_idx=file_idx,
                    window_config=window_config,
                    merge_config=merge_config,
                    output_config=output_config,
                    ui_config=ui_config,
                    progress=progress,
                    main_task=main_task,
                    cancel_event=cancel_event,
                )
            except (VideoDecodeError, ClassifierError, OSError) as exc:
                logger.error(f"Failed to tag {video_path.name}: {exc}")
                if not quiet:
                    typer.echo(f"Error: {video_path.name}: {exc}", err=True)
                failed.append(video_path)
                continue
            created_files.extend(written)
            logger.info(f"Done: {video_path.name}")

    if not quiet:
        for p in created_files:
            typer.echo(f'Created "{p}"')
        if failed:
            typer.echo(f"{len(failed)} video(s) failed.", err=True)
    if verbose:
        typer.echo(f"[timing] total_wall={time.perf_counter() - t0:.2f}s")
        typer.echo("Done.")
    return created_files
