"""
Temporal smoothing for pitch measurements.

An exponential moving average over frequency, display cents and absolute
cents turns jittery per-frame estimates into a stable reading. Silent frames
do not touch the averages, so tracking resumes smoothly after a gap.
"""

from dataclasses import dataclass

from .constants import (
    DISPLAY_CENTS_LIMIT,
    FILTER_ALPHA_MAX,
    FILTER_ALPHA_MIN,
    SMOOTHING_ALPHA,
)


@dataclass(frozen=True)
class SmoothedMeasurement:
    """Smoothed values ready for display."""

    frequency: float
    display_cents: float  # Clamped to ±50
    absolute_cents: float  # Clamped to ±50


def clamp_cents(cents: float, limit: float = DISPLAY_CENTS_LIMIT) -> float:
    return max(-limit, min(limit, cents))


class MeasurementSmoother:
    """
    Exponential moving average of a pitch reading.

    The first reading initializes the averages, later readings move them by
    `alpha` towards the new value: avg = (1 - alpha) * avg + alpha * value.
    """

    def __init__(self, alpha: float = SMOOTHING_ALPHA):
        """
        Initialize smoother.

        Args:
            alpha: Smoothing coefficient, clamped to [0.01, 1.0]
                (smaller = smoother, 1.0 = no smoothing)
        """
        self.alpha = SMOOTHING_ALPHA
        self.set_alpha(alpha)

        self._initialized = False
        self._frequency = 0.0
        self._display_cents = 0.0
        self._absolute_cents = 0.0

    def set_alpha(self, alpha: float) -> float:
        self.alpha = max(FILTER_ALPHA_MIN, min(FILTER_ALPHA_MAX, float(alpha)))
        return self.alpha

    def update(self, frequency: float, display_cents: float, absolute_cents: float) -> SmoothedMeasurement:
        """
        Add a reading and return the smoothed result.

        Args:
            frequency: Instantaneous frequency in Hz
            display_cents: Scale-relative (or 12-TET) deviation in cents
            absolute_cents: 12-TET deviation in cents

        Returns:
            SmoothedMeasurement with cents clamped for display
        """
        if not self._initialized:
            self._frequency = frequency
            self._display_cents = display_cents
            self._absolute_cents = absolute_cents
            self._initialized = True
        else:
            a = self.alpha
            self._frequency = (1 - a) * self._frequency + a * frequency
            self._display_cents = (1 - a) * self._display_cents + a * display_cents
            self._absolute_cents = (1 - a) * self._absolute_cents + a * absolute_cents

        return self.get_smoothed()

    def get_smoothed(self) -> SmoothedMeasurement | None:
        """Current smoothed values without adding a reading, None before the first."""
        if not self._initialized:
            return None
        return SmoothedMeasurement(
            frequency=self._frequency,
            display_cents=clamp_cents(self._display_cents),
            absolute_cents=clamp_cents(self._absolute_cents),
        )

    def reset(self):
        """Forget all history; the next reading initializes the averages."""
        self._initialized = False
        self._frequency = 0.0
        self._display_cents = 0.0
        self._absolute_cents = 0.0

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def raw_display_cents(self) -> float:
        """Unclamped display cents average."""
        return self._display_cents

    @property
    def raw_absolute_cents(self) -> float:
        """Unclamped absolute cents average."""
        return self._absolute_cents
