"""Per-video tagging: windows → classification → merge → outputs."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Sequence
from datetime import datetime
from pathlib import Path
from typing import Any

from rich.progress import Progress, TaskID

from video_action_tagger.classifier.base import Classifier, ClassifierError
from video_action_tagger.config import MergeConfig, OutputConfig, UIConfig, WindowConfig
from video_action_tagger.formatting import get_formatter_spec
from video_action_tagger.pipeline.scheduler import classify_windows
from video_action_tagger.timeline.merge import SegmentMerger
from video_action_tagger.timeline.models import Segment, TaggingResult
from video_action_tagger.timeline.windows import WindowSequence
from video_action_tagger.utils.file_tags import write_file_tags
from video_action_tagger.utils.file_utils import get_unique_filename
from video_action_tagger.video.source import OpenCVVideoSource, VideoSource

logger = logging.getLogger(__name__)

__all__ = ["analyze_source", "tag_file"]


def analyze_source(
    source: VideoSource,
    *,
    classifier: Classifier,
    window_config: WindowConfig,
    merge_config: MergeConfig,
    cancel_event: threading.Event | None = None,
    on_window: Callable[[], None] | None = None,
) -> list[Segment]:
    """Tag an opened video source and return its merged segments.

    A video shorter than one window produces no windows and no segments.

    Parameters:
        source: Video to sample.
        classifier: Classify capability.
        window_config: Window geometry and worker count.
        merge_config: Threshold and minimum segment length.
        cancel_event: Stops window submission when set; segments are merged
            from the windows classified so far.
        on_window: Callback invoked once per classified window.

    Returns:
        list[Segment]: Segments sorted by start, ties broken by label.

    Raises:
        ClassifierError: If the classifier fails on any window or returns a
            probability outside ``[0, 1]``.
        ValueError: If a window or merge setting is out of range.
    """
    merger = SegmentMerger(
        threshold=merge_config.threshold, min_duration=merge_config.min_segment_sec
    )
    windows = WindowSequence(
        duration=source.duration,
        window_sec=window_config.window_sec,
        stride_sec=window_config.stride_sec,
        samples_per_window=window_config.samples_per_window,
    )
    detections = classify_windows(
        windows,
        source,
        classifier,
        workers=window_config.workers,
        cancel_event=cancel_event,
        on_window=on_window,
    )
    try:
        return merger(detections)
    except ValueError as exc:
        # Windows are generated in start order, so a ValueError here comes
        # from the classifier or a probability it returned.
        raise ClassifierError(f"Invalid classifier output: {exc}") from exc


def _format_and_save_output(
    result: TaggingResult,
    output_config: OutputConfig,
    video_path: Path,
    file_idx: int,
) -> list[Path]:
    """Render ``result`` in every configured format and write the files.

    The output filename is resolved from ``output_config.output_template``
    (substituting ``filename``, ``parent``, ``index`` and ``date``) plus the
    format's extension.

    Returns:
        list[Path]: Written files, one per output format.

    Raises:
        ValueError: If the template contains an unknown placeholder or a
            format is not registered.
        OSError: If a file cannot be written.
    """
    template_context = {
        "filename": video_path.stem,
        "index": file_idx,
        "parent": video_path.parent.name,
        "date": datetime.now().strftime("%Y%m%d"),
    }
    try:
        filename_part = output_config.output_template.format(**template_context)
    except KeyError as exc:
        raise ValueError(f"Unknown placeholder in --output-template: {exc}") from exc

    output_config.output_dir.mkdir(parents=True, exist_ok=True)
    written: list[Path] = []
    for format_name in output_config.output_formats:
        spec = get_formatter_spec(format_name)
        base_output_path = output_config.output_dir / f"{filename_part}{spec.file_extension}"
        output_path = get_unique_filename(base_output_path, overwrite=output_config.overwrite)
        output_path.write_text(spec.format_func(result), encoding="utf-8")
        written.append(output_path)
    return written


def tag_file(
    video_path: Path,
    *,
    classifier: Classifier,
    file_idx: int,
    window_config: WindowConfig,
    merge_config: MergeConfig,
    output_config: OutputConfig,
    ui_config: UIConfig,
    progress: Progress | None = None,
    main_task: TaskID | None = None,
    cancel_event: threading.Event | None = None,
    source_factory: Callable[[Path], Any] = OpenCVVideoSource,
) -> list[Path]:
    """Tag a single video and save its outputs.

    Args:
        video_path: Path to the video file.
        classifier: Loaded classifier.
        file_idx: Index of the video in the batch for template substitution.
        window_config: Configuration for window sampling.
        merge_config: Configuration for segment merging.
        output_config: Configuration for output settings.
        ui_config: Configuration for UI and logging.
        progress: Rich progress instance for updates.
        main_task: Task handle within the progress bar.
        cancel_event: Cooperative cancellation flag.
        source_factory: Opens ``video_path``; must return a context manager
            implementing :class:`VideoSource`.

    Returns:
        Paths of the written output files.

    Raises:
        VideoDecodeError: If the video cannot be opened.
        ClassifierError: If inference fails.
        OSError: If an output file cannot be written.

    """
    advance: Callable[[], None] | None = None
    if progress is not None and main_task is not None and not ui_config.no_progress:

        def advance() -> None:
            progress.advance(main_task, 1)

    t0 = time.perf_counter()
    with source_factory(video_path) as source:
        duration = source.duration
        segments = analyze_source(
            source,
            classifier=classifier,
            window_config=window_config,
            merge_config=merge_config,
            cancel_event=cancel_event,
            on_window=advance,
        )
    elapsed = time.perf_counter() - t0

    result = TaggingResult(video=video_path.name, duration_seconds=duration, segments=segments)
    written = _format_and_save_output(result, output_config, video_path, file_idx)

    if output_config.write_tags and segments:
        write_file_tags(video_path, result.labels())

    logger.debug(
        f"{video_path.name}: dur={duration:.2f}s segments={len(segments)} "
        f"labels={result.labels()} t_tag={elapsed:.2f}s"
    )
    if ui_config.verbose and not ui_config.quiet:
        _echo_segments(video_path, segments)
    return written


def _echo_segments(video_path: Path, segments: Sequence[Segment]) -> None:  # pragma: no cover
    import typer

    typer.echo(f"[segments] {video_path.name}: {len(segments)}")
    for seg in segments[:10]:
        typer.echo(
            f"  {seg.label}: {seg.start:.2f}s→{seg.end:.2f}s "
            f"({seg.duration:.2f}s) score={seg.score:.3f}"
        )
