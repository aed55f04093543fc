"""
Analysis protocol: one request in, progress events out, exactly one
terminal event (complete or error) at the end.

Stages run strictly in order, decode → features → embedding → finalize,
with no retries. Each stage announces itself with a progress event before
it starts. An exception from any stage ends the stream with a single
ErrorEvent and no completion.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterator, Optional

import numpy as np
import structlog

from hound_analysis.core.decode import AudioDecoder, as_sample_buffer, pcm_from_bytes
from hound_analysis.core.embedding import EMBEDDING_VERSION, build_embedding
from hound_analysis.core.features import TrackFeatures, extract
from hound_analysis.core.frames import MAX_SECONDS, SAMPLE_RATE
from hound_analysis.schemas.track import (
    CompleteEvent,
    ErrorEvent,
    FeatureRecord,
    ProgressEvent,
    TimbreStats,
)

log = structlog.get_logger()


class Stage(str, Enum):
    DECODE    = "decode"
    FEATURES  = "features"
    EMBEDDING = "embedding"
    FINALIZE  = "finalize"
    DONE      = "done"


STAGE_PROGRESS = {
    Stage.DECODE:    0.1,
    Stage.FEATURES:  0.4,
    Stage.EMBEDDING: 0.8,
    Stage.FINALIZE:  1.0,
}


@dataclass(frozen=True)
class AnalysisRequest:
    """
    Audio comes from exactly one of `samples` (mono, SAMPLE_RATE), `pcm`
    (raw f32le bytes at SAMPLE_RATE) or `audio_path` (decoded here).
    `loudness_lufs` is not interpreted, only forwarded into the record.
    `duration_sec` is an externally probed duration, if known.
    `max_seconds` can shorten the analysed window but never extend it past
    MAX_SECONDS.
    """

    track_id: str
    samples: Optional[Any] = None
    pcm: Optional[bytes] = None
    audio_path: Optional[str] = None
    loudness_lufs: Optional[float] = None
    duration_sec: Optional[float] = None
    max_seconds: int = MAX_SECONDS


def _progress(request: AnalysisRequest, stage: Stage) -> ProgressEvent:
    return ProgressEvent(
        track_id=request.track_id, stage=stage.value, progress=STAGE_PROGRESS[stage]
    )


def _decode(request: AnalysisRequest, decoder: AudioDecoder) -> tuple[np.ndarray, float]:
    max_seconds = min(request.max_seconds, MAX_SECONDS)
    if request.samples is not None:
        samples = as_sample_buffer(request.samples, max_seconds)
        duration = request.duration_sec
    elif request.pcm is not None:
        samples = pcm_from_bytes(request.pcm, max_seconds)
        duration = request.duration_sec
    elif request.audio_path is not None:
        samples = decoder.decode_file(request.audio_path, max_seconds)
        duration = request.duration_sec
        if duration is None:
            duration = decoder.probe_duration(request.audio_path)
    else:
        raise ValueError("AnalysisRequest needs samples, pcm or audio_path")

    if duration is None:
        duration = len(samples) / SAMPLE_RATE
    return samples, float(duration)


def _finalize(
    request: AnalysisRequest,
    duration: float,
    features: TrackFeatures,
    embedding: np.ndarray,
) -> FeatureRecord:
    return FeatureRecord(
        track_id=request.track_id,
        duration_sec=duration,
        loudness_lufs=request.loudness_lufs,
        bpm=features.tempo.bpm,
        bpm_confidence=features.tempo.confidence,
        key=features.key.key,
        mode=features.key.mode,
        key_confidence=features.key.confidence,
        timbre_stats=TimbreStats(
            mfcc_mean=tuple(features.mfcc_mean.tolist()),
            mfcc_var=tuple(features.mfcc_var.tolist()),
            brightness=features.spectral.brightness,
            rolloff=features.spectral.rolloff,
            flatness=features.spectral.flatness,
        ),
        energy_curve_summary=tuple(features.energy_curve.tolist()),
        embedding=tuple(embedding.tolist()),
        embedding_version=EMBEDDING_VERSION,
    )


def iter_analysis_events(
    request: AnalysisRequest,
    decoder: Optional[AudioDecoder] = None,
) -> Iterator[ProgressEvent | CompleteEvent | ErrorEvent]:
    """Generator over the event stream for one track."""
    decoder = decoder or AudioDecoder()
    log.info("pipeline_start", track_id=request.track_id)

    try:
        yield _progress(request, Stage.DECODE)
        samples, duration = _decode(request, decoder)

        yield _progress(request, Stage.FEATURES)
        features = extract(samples, SAMPLE_RATE)

        yield _progress(request, Stage.EMBEDDING)
        embedding = build_embedding(features, SAMPLE_RATE)

        yield _progress(request, Stage.FINALIZE)
        record = _finalize(request, duration, features, embedding)
    except Exception as exc:
        log.error("pipeline_error", track_id=request.track_id, error=str(exc))
        yield ErrorEvent(track_id=request.track_id, error=str(exc) or "Analysis failed")
        return

    log.info("pipeline_complete", track_id=request.track_id, stage=Stage.DONE.value,
             bpm=record.bpm, key=record.key, mode=record.mode,
             duration_sec=round(duration, 2))
    yield CompleteEvent(track_id=request.track_id, result=record)


def run_analysis(
    request: AnalysisRequest,
    emit: Callable[[ProgressEvent | CompleteEvent | ErrorEvent], None],
    decoder: Optional[AudioDecoder] = None,
) -> CompleteEvent | ErrorEvent:
    """Forward every event to `emit` and return the terminal one."""
    terminal = None
    for event in iter_analysis_events(request, decoder):
        emit(event)
        terminal = event
    return terminal
