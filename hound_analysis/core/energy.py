"""Per-second RMS envelope, summarised into a fixed number of bins."""
import numpy as np

from hound_analysis.core.frames import SAMPLE_RATE

ENERGY_BINS = 16
RMS_FLOOR   = 1e-6


def second_rms(samples: np.ndarray, sample_rate: int = SAMPLE_RATE) -> np.ndarray:
    """RMS of consecutive one-second windows; the last window may be shorter."""
    x = np.asarray(samples, dtype=np.float64)
    rms = []
    for start in range(0, len(x), sample_rate):
        window = x[start : start + sample_rate]
        rms.append(np.sqrt(np.sum(window * window) / max(1, len(window))))
    return np.array(rms, dtype=np.float64)


def energy_curve_summary(
    samples: np.ndarray,
    sample_rate: int = SAMPLE_RATE,
    bins: int = ENERGY_BINS,
) -> np.ndarray:
    """
    Normalised RMS curve resampled to `bins` values by nearest index.
    Values lie in [0, 1] and an empty or silent buffer yields all zeros.
    The loudest second reads 1 whenever the nearest-index pick lands on it,
    which is always the case for tracks of 16 seconds or less.
    """
    rms = second_rms(samples, sample_rate)
    if len(rms) == 0:
        return np.zeros(bins)

    normalized = rms / max(float(rms.max()), RMS_FLOOR)
    idx = np.floor(np.arange(bins) / bins * len(normalized)).astype(int)
    return normalized[np.minimum(idx, len(normalized) - 1)]
