"""
microtuner - Real-time microtonal tuner with Scala scale support
"""

from .constants import A4_REFERENCE, FFT_SIZE, HOP_SIZE, NOTE_NAMES, SAMPLE_RATE
from .errors import (
    InvalidInputError,
    InvalidStepError,
    ScaleError,
    ScaleExistsError,
    ScaleParseError,
)
from .measurement_smoother import MeasurementSmoother, SmoothedMeasurement
from .pitch_estimator import PitchEstimator, PitchReading
from .scala import create_scale, parse_scl, parse_step_text, read_scl, serialize_scl
from .scale import ScaleDefinition, ScaleModel, ScaleSnapshot, anchor_steps
from .scale_library import ScaleLibrary, ScaleRecord, slugify
from .settings import TunerSettings, load_settings, save_settings
from .spectral_analyzer import AnalysisResult, SpectralAnalyzer
from .tuner import TunerEngine, TunerState

__version__ = "0.1.0"
__all__ = [
    "TunerEngine",
    "TunerState",
    "SpectralAnalyzer",
    "AnalysisResult",
    "PitchEstimator",
    "PitchReading",
    "MeasurementSmoother",
    "SmoothedMeasurement",
    "ScaleDefinition",
    "ScaleModel",
    "ScaleSnapshot",
    "anchor_steps",
    "ScaleLibrary",
    "ScaleRecord",
    "slugify",
    "parse_scl",
    "read_scl",
    "serialize_scl",
    "parse_step_text",
    "create_scale",
    "TunerSettings",
    "load_settings",
    "save_settings",
    "ScaleError",
    "ScaleParseError",
    "InvalidStepError",
    "InvalidInputError",
    "ScaleExistsError",
    "SAMPLE_RATE",
    "FFT_SIZE",
    "HOP_SIZE",
    "A4_REFERENCE",
    "NOTE_NAMES",
]
