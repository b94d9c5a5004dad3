"""Command-line interface for the video action tagger using Typer.

Features:
- `tag` command that windows each video, classifies the windows and writes
  merged action segments as JSON/CSV.
- Options for window geometry, detection threshold and minimum segment length.
- Verbose mode for detailed logging.
"""

import pathlib
from importlib import import_module
from typing import Annotated

import typer

from video_action_tagger import __version__
from video_action_tagger.formatting import DEFAULT_FORMATS
from video_action_tagger.utils.constant import (
    ACTION_MODEL_PATH,
    CLASSIFIER_ACTIVATION,
    DEFAULT_CLASSIFY_WORKERS,
    DEFAULT_FRAME_SIZE,
    DEFAULT_MIN_SEGMENT_SEC,
    DEFAULT_SAMPLES_PER_WINDOW,
    DEFAULT_STRIDE_SEC,
    DEFAULT_THRESHOLD,
    DEFAULT_WINDOW_SEC,
    DEFAULT_WRITE_FILE_TAGS,
)

# Placeholders for lazy imports; enable monkeypatching in tests.
RESOLVE_INPUT_PATHS = None  # type: ignore[assignment]
DEFAULT_OUTPUT_DIR = None  # type: ignore[assignment]


def version_callback(value: bool) -> None:
    """Show the application's version and exit.

    Args:
        value: When True, print the version and exit.

    Raises:
        typer.Exit: Always raised after printing when value is True.

    """
    if value:
        print(f"video-action-tagger version: {__version__}")
        raise typer.Exit()


app = typer.Typer(
    name="video-action-tagger",
    help="Tag actions in video files by classifying overlapping time windows.",
    add_completion=False,
)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            help="Show the application's version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
) -> None:
    """Show help when no subcommand is given.

    Raises:
        typer.Exit: Raised to terminate after displaying help or version.

    """
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


@app.command()
def tag(
    inputs: Annotated[
        list[str] | None,
        typer.Argument(
            help="Video file(s), folder(s) or wildcard pattern(s) (e.g. '*.mp4').",
            show_default=False,
        ),
    ] = None,
    # Model
    model_path: Annotated[
        pathlib.Path | None,
        typer.Option(
            "--model",
            help="TorchScript action model (.pt). Defaults to ACTION_MODEL_PATH.",
            exists=True,
            dir_okay=False,
            resolve_path=True,
        ),
    ] = pathlib.Path(ACTION_MODEL_PATH) if ACTION_MODEL_PATH else None,
    frame_size: Annotated[
        int,
        typer.Option("--frame-size", help="Square input resolution of the model."),
    ] = DEFAULT_FRAME_SIZE,
    activation: Annotated[
        str,
        typer.Option(
            "--activation",
            help="Activation applied to model logits: softmax, sigmoid or none.",
            case_sensitive=False,
        ),
    ] = CLASSIFIER_ACTIVATION,
    top_k: Annotated[
        int | None,
        typer.Option("--top-k", help="Report only the k most probable labels per window."),
    ] = None,
    # Outputs
    output_dir: Annotated[
        pathlib.Path | None,
        typer.Option(
            "--output-dir",
            "--output",
            "-o",
            help="Directory for results (default: a 'results' folder next to the inputs).",
            file_okay=False,
            dir_okay=True,
            writable=True,
            resolve_path=True,
        ),
    ] = None,
    output_format: Annotated[
        list[str] | None,
        typer.Option(
            "--format",
            help="Output format(s) to write; repeat for several (json, csv).",
        ),
    ] = None,
    output_template: Annotated[
        str,
        typer.Option(
            help=(
                "Template for output filenames. "
                "Supports placeholders: {parent}, {filename}, {index}, {date}."
            ),
        ),
    ] = "{filename}",
    overwrite: Annotated[
        bool,
        typer.Option(
            "--overwrite",
            help="Overwrite existing output files instead of appending numbered suffixes.",
        ),
    ] = False,
    no_tags: Annotated[
        bool,
        typer.Option("--no-tags", help="Do not attach detected labels to the videos as file tags."),
    ] = not DEFAULT_WRITE_FILE_TAGS,
    # Windowing and merging
    window_sec: Annotated[
        float,
        typer.Option("--window", help="Window length in seconds."),
    ] = DEFAULT_WINDOW_SEC,
    stride_sec: Annotated[
        float,
        typer.Option("--stride", help="Offset between consecutive window starts in seconds."),
    ] = DEFAULT_STRIDE_SEC,
    samples_per_window: Annotated[
        int,
        typer.Option("--samples", help="Frames sampled uniformly across each window."),
    ] = DEFAULT_SAMPLES_PER_WINDOW,
    threshold: Annotated[
        float,
        typer.Option("--threshold", help="Per-label minimum probability for a detection."),
    ] = DEFAULT_THRESHOLD,
    min_segment_sec: Annotated[
        float,
        typer.Option("--min-segment", help="Drop merged segments shorter than this (seconds)."),
    ] = DEFAULT_MIN_SEGMENT_SEC,
    # Performance
    workers: Annotated[
        int,
        typer.Option("--workers", help="Threads used to run the classifier concurrently."),
    ] = DEFAULT_CLASSIFY_WORKERS,
    # UX and logging
    no_progress: Annotated[
        bool,
        typer.Option("--no-progress", help="Disable the Rich progress bar."),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option("--quiet", help="Suppress console messages except errors."),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Enable verbose output."),
    ] = False,
) -> list[pathlib.Path]:
    """Tag actions in videos and write merged segments per video.

    Args:
        inputs: Explicit paths, folders or patterns to tag.
        model_path: TorchScript action model.
        frame_size: Model input resolution.
        activation: Logit activation.
        top_k: Keep only the k most probable labels per window.
        output_dir: Directory to save outputs.
        output_format: Output formats; defaults to JSON and CSV.
        output_template: Filename template supporting placeholders.
        overwrite: Overwrite existing outputs when True.
        no_tags: Skip file tagging.
        window_sec: Window length in seconds.
        stride_sec: Window stride in seconds.
        samples_per_window: Frames sampled per window.
        threshold: Detection threshold.
        min_segment_sec: Minimum segment length in seconds.
        workers: Classification threads.
        no_progress: Disable progress bar output.
        quiet: Suppress non-error output.
        verbose: Enable verbose logging.

    Returns:
        A list of created output paths.

    Raises:
        typer.BadParameter: When no input is given.

    """
    if not inputs:
        raise typer.BadParameter("Provide at least one video file, folder or pattern.")

    global RESOLVE_INPUT_PATHS, DEFAULT_OUTPUT_DIR  # pylint: disable=global-statement
    if RESOLVE_INPUT_PATHS is None or DEFAULT_OUTPUT_DIR is None:
        from video_action_tagger.utils.file_utils import (  # pylint: disable=import-outside-toplevel
            default_output_dir as _default_output_dir,
            resolve_input_paths as _resolve_input_paths,
        )

        RESOLVE_INPUT_PATHS = RESOLVE_INPUT_PATHS or _resolve_input_paths
        DEFAULT_OUTPUT_DIR = DEFAULT_OUTPUT_DIR or _default_output_dir

    resolved_paths = RESOLVE_INPUT_PATHS(inputs)
    if not resolved_paths:
        typer.echo(f"No video files found in: {', '.join(inputs)}", err=True)
        return []

    if output_dir is None:
        output_dir = DEFAULT_OUTPUT_DIR(inputs)

    _impl = import_module("video_action_tagger.pipeline.cli").cli_tag
    return _impl(
        video_files=resolved_paths,
        output_dir=output_dir,
        model_path=model_path,
        output_formats=tuple(output_format) if output_format else DEFAULT_FORMATS,
        output_template=output_template,
        window_sec=window_sec,
        stride_sec=stride_sec,
        samples_per_window=samples_per_window,
        threshold=threshold,
        min_segment_sec=min_segment_sec,
        workers=workers,
        frame_size=frame_size,
        activation=activation.lower(),
        top_k=top_k,
        write_tags=not no_tags,
        overwrite=overwrite,
        verbose=verbose,
        quiet=quiet,
        no_progress=no_progress,
    )
