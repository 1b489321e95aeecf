"""
Single-peak FFT analyzer for monophonic pitch detection.

The analyzer gates silent frames by RMS level, removes DC, applies a Hann
window and picks the strongest spectral peak above 50 Hz. Parabolic
interpolation over the three bins around the peak gives sub-bin accuracy.
"""

import math
from dataclasses import dataclass

import numpy as np
from scipy import fft as sp_fft

from .constants import (
    FFT_SIZE,
    LEVEL_EPSILON,
    MIN_ANALYSIS_FREQUENCY,
    SAMPLE_RATE,
    THRESHOLD_DB,
    THRESHOLD_DB_MAX,
    THRESHOLD_DB_MIN,
)
from .errors import InvalidInputError


@dataclass
class AnalysisResult:
    """Result of analyzing one frame."""

    valid: bool = False  # False when gated as silence
    frequency: float = 0.0  # Refined peak frequency in Hz
    level_db: float = -math.inf  # Input level in dBFS
    peak_bin: float = 0.0  # Refined (fractional) bin index
    magnitude: float = 0.0  # Magnitude of the coarse peak bin


def level_dbfs(samples: np.ndarray) -> float:
    """RMS level of samples in dBFS."""
    if len(samples) == 0:
        return 20.0 * math.log10(LEVEL_EPSILON)
    rms = float(np.sqrt(np.mean(np.square(samples))))
    return 20.0 * math.log10(rms + LEVEL_EPSILON)


def parabolic_offset(alpha: float, beta: float, gamma: float) -> float:
    """
    Sub-bin offset of a peak from its left, center and right magnitudes.

    Returns a value in roughly [-0.5, 0.5] to add to the center bin index.
    """
    return 0.5 * (alpha - gamma) / (alpha - 2.0 * beta + gamma + LEVEL_EPSILON)


class SpectralAnalyzer:
    """
    FFT peak analyzer with a level gate.

    Frames are copied into a fixed analysis buffer of `fft_size` samples:
    shorter frames are zero-padded at the end, longer ones truncated.
    """

    def __init__(
        self,
        sample_rate: float = SAMPLE_RATE,
        fft_size: int = FFT_SIZE,
        threshold_db: float = THRESHOLD_DB,
        min_frequency: float = MIN_ANALYSIS_FREQUENCY,
    ):
        """
        Initialize analyzer.

        Args:
            sample_rate: Audio sample rate in Hz
            fft_size: Analysis window size in samples
            threshold_db: Frames below this level (dBFS) are treated as silence
            min_frequency: Bins below this frequency are ignored
        """
        self.sample_rate = float(sample_rate)
        self.fft_size = fft_size
        self.min_frequency = min_frequency
        self.threshold_db = THRESHOLD_DB
        self.set_threshold_db(threshold_db)

        self._window = np.hanning(fft_size)

    def set_threshold_db(self, threshold_db: float) -> float:
        """
        Set the level gate, clamped to [-90, 0] dBFS.

        Raises:
            InvalidInputError: If the threshold is NaN or infinite
        """
        threshold_db = float(threshold_db)
        if not math.isfinite(threshold_db):
            raise InvalidInputError(f"Threshold must be a finite dBFS value, got {threshold_db}")
        self.threshold_db = max(THRESHOLD_DB_MIN, min(THRESHOLD_DB_MAX, threshold_db))
        return self.threshold_db

    def set_sample_rate(self, sample_rate: float):
        if sample_rate <= 0:
            raise ValueError(f"Sample rate must be positive, got {sample_rate}")
        self.sample_rate = float(sample_rate)

    @property
    def min_bin(self) -> int:
        """Lowest bin considered for the peak search."""
        return max(1, int(self.min_frequency * self.fft_size / self.sample_rate))

    def process(self, samples: np.ndarray) -> AnalysisResult:
        """
        Analyze one frame of mono samples.

        Args:
            samples: Audio samples (any float dtype)

        Returns:
            AnalysisResult, with valid=False when the frame is below threshold
        """
        samples = np.asarray(samples, dtype=np.float64).ravel()
        n = min(len(samples), self.fft_size)

        level = level_dbfs(samples[:n])
        if n == 0 or level < self.threshold_db:
            return AnalysisResult(level_db=level)

        buffer = np.zeros(self.fft_size, dtype=np.float64)
        buffer[:n] = samples[:n] - np.mean(samples[:n])
        buffer *= self._window

        half = self.fft_size // 2
        mags = np.abs(sp_fft.rfft(buffer)[:half])

        min_bin = self.min_bin
        if min_bin >= half - 2:
            return AnalysisResult(level_db=level)

        # Search [min_bin, half - 1) so the right neighbour always exists
        peak = min_bin + int(np.argmax(mags[min_bin : half - 1]))
        peak = max(1, min(peak, half - 2))

        offset = parabolic_offset(mags[peak - 1], mags[peak], mags[peak + 1])
        refined_bin = peak + offset
        frequency = refined_bin * self.sample_rate / self.fft_size

        if not math.isfinite(frequency):
            return AnalysisResult(level_db=level)

        return AnalysisResult(
            valid=True,
            frequency=float(frequency),
            level_db=level,
            peak_bin=float(refined_bin),
            magnitude=float(mags[peak]),
        )
