"""
Tuner settings: defaults, validation and persistence.

Settings are stored with QSettings under ("microtuner", "Microtuner"), the
same way the desktop window keeps its options between sessions.
"""

import math
from dataclasses import dataclass

from PySide6.QtCore import QSettings

from .constants import (
    A4_MAX,
    A4_MIN,
    A4_REFERENCE,
    ROOT_INDEX,
    SMOOTHING_ALPHA,
    SMOOTHING_ALPHA_MAX,
    SMOOTHING_ALPHA_MIN,
    THRESHOLD_DB,
    THRESHOLD_DB_MAX,
    THRESHOLD_DB_MIN,
)
from .errors import InvalidInputError
from .scale import validate_root_index

ORGANIZATION = "microtuner"
APPLICATION = "Microtuner"


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def clamp_finite(value: float, low: float, high: float, name: str) -> float:
    """
    Clamp a finite number to [low, high].

    Raises:
        InvalidInputError: If the value is NaN or infinite
    """
    value = float(value)
    if not math.isfinite(value):
        raise InvalidInputError(f"{name} must be a finite number, got {value}")
    return _clamp(value, low, high)


def clamp_a4_reference(hz: float) -> float:
    """
    Clamp an A4 reference to [200, 1000] Hz.

    Raises:
        InvalidInputError: If the value is not a positive finite number
    """
    if not math.isfinite(hz) or hz <= 0:
        raise InvalidInputError(f"A4 reference must be a positive number, got {hz}")
    return _clamp(float(hz), A4_MIN, A4_MAX)


def parse_a4_reference(text: str) -> float:
    """
    Parse A4 reference text typed by the user.

    A comma is accepted as decimal separator and a trailing "Hz" is ignored.
    Out-of-range values are clamped, the clamped value is returned.

    Raises:
        InvalidInputError: If the text is not a positive finite number
    """
    core = text.strip().replace(",", ".")
    if core.lower().endswith("hz"):
        core = core[:-2].strip()
    try:
        value = float(core)
    except ValueError as exc:
        raise InvalidInputError(f"'{text.strip()}' is not a number") from exc
    return clamp_a4_reference(value)


@dataclass
class TunerSettings:
    """User-facing configuration of the tuner."""

    smoothing_alpha: float = SMOOTHING_ALPHA
    threshold_db: float = THRESHOLD_DB
    a4_reference: float = A4_REFERENCE
    root_index: int = ROOT_INDEX
    last_scale_path: str = ""

    def __post_init__(self):
        # Stored values that cannot be used fall back to the defaults
        try:
            self.smoothing_alpha = clamp_finite(
                self.smoothing_alpha, SMOOTHING_ALPHA_MIN, SMOOTHING_ALPHA_MAX, "Smoothing alpha"
            )
        except InvalidInputError:
            self.smoothing_alpha = SMOOTHING_ALPHA
        try:
            self.threshold_db = clamp_finite(self.threshold_db, THRESHOLD_DB_MIN, THRESHOLD_DB_MAX, "Threshold")
        except InvalidInputError:
            self.threshold_db = THRESHOLD_DB
        try:
            self.a4_reference = clamp_a4_reference(float(self.a4_reference))
        except InvalidInputError:
            self.a4_reference = A4_REFERENCE
        try:
            self.root_index = validate_root_index(self.root_index)
        except InvalidInputError:
            self.root_index = ROOT_INDEX


DEFAULTS = TunerSettings()


def _open(qsettings: QSettings | None) -> QSettings:
    if qsettings is not None:
        return qsettings
    return QSettings(ORGANIZATION, APPLICATION)


def load_settings(qsettings: QSettings | None = None) -> TunerSettings:
    """Load saved settings, falling back to defaults for missing keys."""
    settings = _open(qsettings)
    return TunerSettings(
        smoothing_alpha=settings.value("smoothing_alpha", DEFAULTS.smoothing_alpha, type=float),
        threshold_db=settings.value("threshold_db", DEFAULTS.threshold_db, type=float),
        a4_reference=settings.value("a4_reference", DEFAULTS.a4_reference, type=float),
        root_index=settings.value("root_index", DEFAULTS.root_index, type=int),
        last_scale_path=settings.value("last_scale_path", DEFAULTS.last_scale_path, type=str),
    )


def save_settings(tuner_settings: TunerSettings, qsettings: QSettings | None = None):
    """Persist settings."""
    settings = _open(qsettings)
    settings.setValue("smoothing_alpha", tuner_settings.smoothing_alpha)
    settings.setValue("threshold_db", tuner_settings.threshold_db)
    settings.setValue("a4_reference", tuner_settings.a4_reference)
    settings.setValue("root_index", tuner_settings.root_index)
    settings.setValue("last_scale_path", tuner_settings.last_scale_path)
    settings.sync()


def reset_settings(qsettings: QSettings | None = None) -> TunerSettings:
    """Clear saved settings and return the defaults."""
    settings = _open(qsettings)
    settings.clear()
    settings.sync()
    return TunerSettings()
