"""
Celery task for the analysis pipeline.
Each invocation runs in its own worker process and owns its buffers.
"""
import base64
from typing import Optional

import structlog

from hound_analysis.config import settings
from hound_analysis.core.pipeline import AnalysisRequest, run_analysis
from hound_analysis.schemas.track import ErrorEvent, ProgressEvent
from hound_analysis.tasks.celery_app import celery_app

log = structlog.get_logger()


class AnalysisFailed(Exception):
    """Terminal error for one track; carries the pipeline's error message."""

    def __init__(self, message: str, track_id: Optional[str] = None):
        super().__init__(message)
        self.track_id = track_id


@celery_app.task(bind=True, name="hound_analysis.tasks.analysis.run_analysis_pipeline")
def run_analysis_pipeline(
    self,
    track_id: str,
    pcm_b64: Optional[str] = None,
    audio_path: Optional[str] = None,
    loudness_lufs: Optional[float] = None,
    duration_sec: Optional[float] = None,
):
    """
    Analyse one track. Audio comes either as base64-encoded f32le PCM at
    22050 Hz (`pcm_b64`) or as a file path for the decode collaborator.
    Progress is published as PROGRESS task state; the completion event is
    the task result. Failures are not retried here.
    """
    max_seconds = settings.ANALYSIS_MAX_SECONDS

    def emit(event):
        if isinstance(event, ProgressEvent):
            self.update_state(state="PROGRESS", meta=event.model_dump())

    try:
        pcm = (
            base64.b64decode(pcm_b64, validate=True)
            if pcm_b64 is not None else None
        )
    except Exception as exc:
        log.error("pcm_payload_invalid", track_id=track_id, error=str(exc))
        raise AnalysisFailed(str(exc) or "Analysis failed", track_id) from exc

    request = AnalysisRequest(
        track_id=track_id,
        pcm=pcm,
        audio_path=audio_path,
        loudness_lufs=loudness_lufs,
        duration_sec=duration_sec,
        max_seconds=max_seconds,
    )
    terminal = run_analysis(request, emit)

    if isinstance(terminal, ErrorEvent):
        raise AnalysisFailed(terminal.error, track_id)
    return terminal.model_dump(mode="json")
