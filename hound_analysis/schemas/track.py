"""Pydantic models for the analysis output and the event stream."""
from typing import Annotated, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field


class TimbreStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    mfcc_mean: Tuple[float, ...]
    mfcc_var: Tuple[float, ...]
    brightness: float          # spectral centroid, Hz
    rolloff: float             # 85 % energy rolloff, Hz
    flatness: float


class FeatureRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    track_id: str
    duration_sec: float
    # Opaque to the analysis, forwarded as received
    loudness_lufs: Optional[float] = None

    # Rhythm
    bpm: Optional[float] = None
    bpm_confidence: float = 0.0

    # Tonality
    key: Optional[str] = None
    mode: Optional[Literal["major", "minor"]] = None
    key_confidence: float = 0.0

    timbre_stats: TimbreStats
    energy_curve_summary: Tuple[float, ...]

    embedding: Tuple[float, ...]
    embedding_version: int


class ProgressEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["progress"] = "progress"
    track_id: str
    stage: Literal["decode", "features", "embedding", "finalize"]
    progress: float = Field(ge=0.0, le=1.0)


class CompleteEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["complete"] = "complete"
    track_id: str
    result: FeatureRecord


class ErrorEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["error"] = "error"
    track_id: str
    error: str


AnalysisEvent = Annotated[
    Union[ProgressEvent, CompleteEvent, ErrorEvent],
    Field(discriminator="type"),
]
