"""
Decode and probe collaborators.

Everything the numeric core needs is a mono float32 buffer at 22.05 kHz,
capped at MAX_SECONDS. This module produces such buffers from raw f32le PCM
bytes or from audio files on disk, and probes container duration. The
numeric stages never call into it; only the pipeline's decode stage does.
"""
from typing import Optional

import numpy as np
import soundfile as sf
import structlog

from hound_analysis.core.frames import MAX_SECONDS, SAMPLE_RATE

log = structlog.get_logger()


def as_sample_buffer(samples, max_seconds: int = MAX_SECONDS) -> np.ndarray:
    """
    Validate and freeze a mono sample buffer:
    1-D, finite, float32, truncated to max_seconds, read-only.
    """
    buf = np.asarray(samples, dtype=np.float32)
    if buf.ndim != 1:
        raise ValueError(f"Expected a mono (1-D) sample buffer, got shape {buf.shape}")
    if not np.all(np.isfinite(buf)):
        raise ValueError("Sample buffer contains NaN or infinite values")

    buf = buf[: max_seconds * SAMPLE_RATE].copy()
    buf.setflags(write=False)
    return buf


def pcm_from_bytes(raw: bytes, max_seconds: int = MAX_SECONDS) -> np.ndarray:
    """Little-endian 32-bit float PCM bytes; a trailing partial sample is ignored."""
    usable = len(raw) - len(raw) % 4
    return as_sample_buffer(np.frombuffer(raw[:usable], dtype="<f4"), max_seconds)


class AudioDecoder:

    def decode_file(self, path: str, max_seconds: int = MAX_SECONDS) -> np.ndarray:
        """
        Read an audio file into an analysis buffer:
        1. Decode with soundfile (WAV, FLAC, AIFF, OGG)
        2. Down-mix to mono
        3. Resample to SAMPLE_RATE with librosa when needed
        4. Truncate to max_seconds
        """
        log.info("decode_start", path=path)
        try:
            audio, sr = sf.read(
                path,
                dtype="float32",
                always_2d=True,
                frames=max_seconds * self._probe_samplerate(path),
            )
        except Exception as e:
            raise ValueError(f"Could not decode audio file: {e}") from e

        mono = audio.mean(axis=1)
        if sr != SAMPLE_RATE:
            mono = self._resample(mono, sr, SAMPLE_RATE)

        buf = as_sample_buffer(mono, max_seconds)
        log.info("decode_complete", path=path, samples=len(buf), source_sr=sr)
        return buf

    def probe_duration(self, path: str) -> Optional[float]:
        """Container duration without decoding; None if the file cannot be probed."""
        try:
            return float(sf.info(path).duration)
        except Exception as e:
            log.warning("duration_probe_failed", path=path, error=str(e))
            return None

    def _probe_samplerate(self, path: str) -> int:
        return int(sf.info(path).samplerate)

    def _resample(self, audio: np.ndarray, orig_sr: int, target_sr: int) -> np.ndarray:
        import librosa
        return librosa.resample(audio, orig_sr=orig_sr, target_sr=target_sr)
