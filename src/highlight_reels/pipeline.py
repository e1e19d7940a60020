"""Highlight rendering pipeline.

Turns validated highlight segments of one source video into vertical,
captioned clips:

1. Validate segments against the minimum clip duration
2. For each segment, time the caption words (provider or estimate)
3. Write the subtitle file, or fall back to static burn-in captions
4. Build the filter graph and render the clip with FFmpeg
5. Remove the segment's working files, whatever the outcome

Segments are rendered one at a time unless ``max_workers`` allows more.
Clips are always returned in input segment order.
"""

from __future__ import annotations

import time
import uuid
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Callable, Sequence

from highlight_reels.captions.subtitles import write_srt_file
from highlight_reels.config import RenderConfig
from highlight_reels.errors import (
    ErrorContext,
    FileSystemError,
    RenderEngineError,
    ResourceError,
    TranscriptionError,
    format_error_for_display,
)
from highlight_reels.ffmpeg import FFmpegWrapper
from highlight_reels.logging import (
    ReelsLogger,
    get_logger,
    log_operation_complete,
    log_operation_failed,
    log_operation_start,
)
from highlight_reels.models.clip import (
    CaptionMode,
    ClipArtifact,
    ClipFailure,
    JobState,
    RenderJob,
    RenderResult,
)
from highlight_reels.models.segment import HighlightSegment
from highlight_reels.segments import validate_segments
from highlight_reels.transcription.base import Transcriber
from highlight_reels.transcription.engine import CaptionTimingEngine
from highlight_reels.transcription.whisper_api import WhisperAPITranscriber
from highlight_reels.video.filters import FilterSpec, build_filter_spec

logger = get_logger(__name__)

ProgressCallback = Callable[[str, float], None]


def new_job_id() -> str:
    """Random identifier that prefixes every file of one request."""
    return uuid.uuid4().hex[:12]


class ClipRenderer:
    """Renders highlight segments into social media clips.

    Args:
        config: Render settings
        ffmpeg: FFmpeg wrapper; built from ``config.ffmpeg`` if not given
        transcriber: Primary caption timing source; defaults to the Whisper API
        progress_callback: Called with (stage, fraction complete)
    """

    def __init__(
        self,
        config: RenderConfig | None = None,
        ffmpeg: FFmpegWrapper | None = None,
        transcriber: Transcriber | None = None,
        progress_callback: ProgressCallback | None = None,
    ):
        self.config = config or RenderConfig()
        self.ffmpeg = ffmpeg or FFmpegWrapper(self.config.ffmpeg)
        self.progress_callback = progress_callback

        captions = self.config.captions
        if transcriber is None and captions.enabled and not captions.estimate_only:
            transcriber = WhisperAPITranscriber(
                model=captions.transcription_model,
                timeout=self.config.transcription_timeout,
                language=captions.language,
            )
        self.transcriber = transcriber

    def _report_progress(self, stage: str, progress: float) -> None:
        """Report progress to callback if set."""
        if self.progress_callback:
            self.progress_callback(stage, progress)

    def new_timing_engine(self) -> CaptionTimingEngine:
        """Caption timing engine for one request.

        Provider state such as an exhausted quota is scoped to the engine, so
        each request starts with the provider enabled.
        """
        return CaptionTimingEngine(
            primary=self.transcriber,
            estimate_only=self.config.captions.estimate_only,
        )

    def create_job(
        self,
        source: Path,
        segment: HighlightSegment,
        index: int,
        job_id: str,
    ) -> RenderJob:
        """Create the render job for one segment."""
        return RenderJob(
            job_id=job_id,
            index=index,
            segment=segment,
            input_path=source,
            output_path=self.config.output_dir / f"{job_id}_clip_{index:02d}.mp4",
            aspect_ratio=self.config.aspect_ratio,
            caption_text=segment.transcription.strip(),
        )

    def _set_state(self, job: RenderJob, state: JobState, log: ReelsLogger) -> None:
        log.debug(f"{job.state.value} -> {state.value}")
        job.state = state

    def _prepare_captions(
        self,
        job: RenderJob,
        timing: CaptionTimingEngine,
        log: ReelsLogger,
    ) -> tuple[CaptionMode, str | Path | None]:
        """Choose the caption mode for a job and produce its payload.

        Returns:
            (mode, payload): the subtitle file for TIMED, the caption text for
            STATIC, None for NONE

        Raises:
            TranscriptionError: If timing fails and timed captions are required
        """
        settings = self.config.captions
        if not settings.enabled or not job.caption_text:
            return CaptionMode.NONE, None

        self._set_state(job, JobState.CAPTION_PENDING, log)
        temp_dir = self.config.temp_dir
        temp_dir.mkdir(parents=True, exist_ok=True)

        try:
            audio_path = None
            if timing.primary_enabled:
                audio_path = job.working_file(temp_dir, ".mp3")
                self.ffmpeg.extract_audio(
                    job.input_path,
                    audio_path,
                    job.start,
                    job.duration,
                    timeout=self.config.transcription_timeout,
                )

            timed = timing.time_words(audio_path, job.duration, job.caption_text)
            subtitle_path = job.working_file(temp_dir, ".srt")
            entries = write_srt_file(timed.words, subtitle_path, settings.group_size)
            log.debug(
                f"Wrote {len(entries)} subtitle entries from {len(timed.words)} words",
                extra={"timing_source": timed.source},
            )
            return CaptionMode.TIMED, subtitle_path

        except TranscriptionError as e:
            if e.exhausts_provider:
                timing.disable_primary(e.message)
            if settings.require_timed:
                raise
            log.warning(f"Caption timing failed, using static captions: {e.message}")
            return CaptionMode.STATIC, job.caption_text

        except (RenderEngineError, ResourceError) as e:
            if settings.require_timed:
                raise
            log.warning(f"Audio extraction failed, using static captions: {e.message}")
            return CaptionMode.STATIC, job.caption_text

    def build_filters(
        self,
        job: RenderJob,
        caption_payload: str | Path | None,
    ) -> FilterSpec:
        captions = self.config.captions
        return build_filter_spec(
            job.aspect_ratio,
            job.caption_mode,
            caption_payload,
            static_style=captions.static_style,
            subtitle_style=captions.subtitle_style,
        )

    def cleanup_job(self, job: RenderJob) -> list[FileSystemError]:
        """Delete a job's working files.

        Failures are logged and returned, never raised.
        """
        errors = []
        for path in job.transient_files:
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                error = FileSystemError(
                    f"Could not remove working file: {e}",
                    context={"path": str(path)},
                )
                logger.warning(str(error), extra={"job_id": job.job_id, "segment": job.index})
                errors.append(error)
        job.transient_files.clear()
        return errors

    def discard_output(self, job: RenderJob) -> FileSystemError | None:
        """Remove a partially written clip. Failures are logged, not raised."""
        try:
            job.output_path.unlink(missing_ok=True)
        except OSError as e:
            error = FileSystemError(
                f"Could not remove partial clip: {e}",
                context={"path": str(job.output_path)},
            )
            logger.warning(str(error), extra={"job_id": job.job_id, "segment": job.index})
            return error
        return None

    def render_segment(
        self,
        source: Path | str,
        segment: HighlightSegment,
        index: int,
        job_id: str,
        timing: CaptionTimingEngine | None = None,
    ) -> ClipArtifact:
        """Render one segment into a clip.

        Working files are removed on every exit path.

        Args:
            source: Source video
            segment: Validated segment
            index: Position of the segment in the request
            job_id: Request identifier
            timing: Caption timing engine shared by the request

        Returns:
            ClipArtifact for the rendered file

        Raises:
            RenderEngineError: If FFmpeg fails to render the clip
            TranscriptionError: If timed captions are required and timing fails
        """
        job = self.create_job(Path(source), segment, index, job_id)
        timing = timing or self.new_timing_engine()
        log = logger.with_context(job_id=job_id, segment=index)

        log.info(
            f"Rendering segment {index} ({segment.start:.2f}-{segment.end:.2f}, "
            f"{segment.duration:.2f}s)"
        )

        try:
            with ErrorContext(
                f"render segment {index}",
                context={"job_id": job_id, "segment": index},
            ):
                mode, payload = self._prepare_captions(job, timing, log)
                job.caption_mode = mode

                filter_spec = self.build_filters(job, payload)
                self._set_state(job, JobState.FILTER_BUILT, log)

                self._set_state(job, JobState.RENDERING, log)
                self.ffmpeg.render_clip(
                    job.input_path,
                    job.output_path,
                    job.start,
                    job.duration,
                    filter_spec,
                    encoding=self.config.encoding_params(),
                    timeout=self.config.render_timeout,
                )
                self._set_state(job, JobState.DONE, log)

        except Exception:
            if job.state == JobState.RENDERING:
                self.discard_output(job)
            self._set_state(job, JobState.FAILED, log)
            raise

        finally:
            self.cleanup_job(job)

        log.info(f"Rendered {job.output_path.name}", extra={"caption_mode": job.caption_mode.value})
        return ClipArtifact(
            id=index,
            path=job.output_path,
            segment=segment,
            caption_mode=job.caption_mode,
        )

    def _render_sequential(
        self,
        source: Path,
        segments: Sequence[HighlightSegment],
        job_id: str,
        timing: CaptionTimingEngine,
        result: RenderResult,
    ) -> None:
        total = len(segments)
        for i, segment in enumerate(segments):
            try:
                result.clips.append(self.render_segment(source, segment, i, job_id, timing))
            except RenderEngineError as e:
                self._handle_render_failure(e, i, segment, result)
            self._report_progress("rendering", (i + 1) / total)

    def _render_parallel(
        self,
        source: Path,
        segments: Sequence[HighlightSegment],
        job_id: str,
        timing: CaptionTimingEngine,
        result: RenderResult,
    ) -> None:
        total = len(segments)
        done: dict[int, ClipArtifact] = {}
        aborted: RenderEngineError | None = None
        completed = 0

        with ThreadPoolExecutor(max_workers=self.config.max_workers) as executor:
            futures = {
                executor.submit(self.render_segment, source, segment, i, job_id, timing): i
                for i, segment in enumerate(segments)
            }

            for future in as_completed(futures):
                if future.cancelled():
                    continue

                i = futures[future]
                completed += 1
                try:
                    done[i] = future.result()
                except RenderEngineError as e:
                    if self.config.failure_policy == "abort" and aborted is None:
                        aborted = e
                        # Running jobs finish and clean up; queued ones never start
                        for pending in futures:
                            pending.cancel()
                    elif self.config.failure_policy == "continue":
                        self._handle_render_failure(e, i, segments[i], result)
                except Exception:
                    for pending in futures:
                        pending.cancel()
                    raise

                self._report_progress("rendering", completed / total)

        result.clips.extend(done[i] for i in sorted(done))
        if aborted is not None:
            aborted.completed = list(result.clips)
            raise aborted
        result.failures.sort(key=lambda f: f.index)

    def _handle_render_failure(
        self,
        error: RenderEngineError,
        index: int,
        segment: HighlightSegment,
        result: RenderResult,
    ) -> None:
        if self.config.failure_policy == "abort":
            error.completed = list(result.clips)
            logger.error(
                f"Aborting after segment {index} failed; "
                f"{len(result.clips)} clip(s) already rendered",
                extra={"job_id": result.job_id},
            )
            raise error

        logger.error(
            f"Segment {index} failed, continuing: {error.message}",
            extra={"job_id": result.job_id},
        )
        result.failures.append(ClipFailure(
            index=index,
            segment=segment,
            error=format_error_for_display(error),
        ))

    def delete_source(self, source: Path) -> FileSystemError | None:
        """Delete the source video. Failures are logged, not raised."""
        try:
            source.unlink(missing_ok=True)
        except OSError as e:
            error = FileSystemError(
                f"Could not delete source video: {e}",
                context={"path": str(source)},
            )
            logger.warning(str(error))
            return error

        logger.debug(f"Deleted source video {source.name}")
        return None

    def render_highlights(
        self,
        source: Path | str,
        segments: Sequence[HighlightSegment],
        job_id: str | None = None,
    ) -> RenderResult:
        """Validate segments and render each accepted one.

        Args:
            source: Source video
            segments: Candidate segments in the order clips should be returned
            job_id: Request identifier; a random one is generated if not given

        Returns:
            RenderResult with clips in input order

        Raises:
            ResourceError: If the source video does not exist
            NoValidSegmentsError: If every segment is too short
            RenderEngineError: On the first render failure under the abort
                policy, with the clips rendered so far in ``completed``
        """
        source = Path(source)
        if not source.exists():
            raise ResourceError(f"Source video not found: {source}")

        job_id = job_id or new_job_id()
        result = RenderResult(job_id=job_id)

        accepted = validate_segments(
            segments,
            self.config.min_clip_duration,
            on_reject=lambda segment, reason: result.rejected.append(segment),
        )
        logger.debug(
            f"Segment proposal range is {self.config.proposal_min_duration:g}-"
            f"{self.config.proposal_max_duration:g}s, "
            f"acceptance minimum is {self.config.min_clip_duration:g}s"
        )

        self.config.output_dir.mkdir(parents=True, exist_ok=True)
        self.config.temp_dir.mkdir(parents=True, exist_ok=True)

        timing = self.new_timing_engine()
        self._report_progress("rendering", 0.0)

        started = time.monotonic()
        log_operation_start(logger, "render highlights", job_id=job_id, segments=len(accepted))
        try:
            if self.config.max_workers > 1 and len(accepted) > 1:
                self._render_parallel(source, accepted, job_id, timing, result)
            else:
                self._render_sequential(source, accepted, job_id, timing, result)
        except Exception as e:
            log_operation_failed(logger, "render highlights", e, job_id=job_id)
            raise

        if self.config.delete_source:
            self.delete_source(source)

        log_operation_complete(
            logger,
            "render highlights",
            duration=time.monotonic() - started,
            job_id=job_id,
            rendered=len(result.clips),
            failed=len(result.failures),
        )
        return result
