"""
Real-time microtonal tuner engine.

The engine runs one frame at a time on the audio thread:

    samples -> SpectralAnalyzer -> PitchEstimator -> MeasurementSmoother -> TunerState

Scale changes (import, create, edit, root selection) happen on a control
thread. They replace the ScaleModel snapshot, which the next frame picks up.
Every processed frame and every control change publishes an immutable
TunerState to the subscribers.
"""

import logging
import math
from collections.abc import Callable
from dataclasses import dataclass, replace
from pathlib import Path

import numpy as np

from .constants import (
    A4_PRESETS,
    A4_REFERENCE,
    NO_NOTE,
    ROOT_INDEX,
    SAMPLE_RATE,
    SMOOTHING_ALPHA_MAX,
    SMOOTHING_ALPHA_MIN,
)
from .measurement_smoother import MeasurementSmoother
from .pitch_estimator import PitchEstimator
from .scala import read_scl
from .scale import ScaleDefinition, ScaleModel, ScaleSnapshot
from .settings import TunerSettings, clamp_a4_reference, clamp_finite
from .spectral_analyzer import SpectralAnalyzer

logger = logging.getLogger(__name__)

StateCallback = Callable[["TunerState"], None]


@dataclass(frozen=True)
class TunerState:
    """Snapshot of everything a presentation layer shows."""

    frequency: float = 0.0  # Smoothed frequency in Hz, 0 when no signal
    note_name: str = NO_NOTE  # Nearest 12-TET note, e.g. "A4"
    absolute_cents: float = 0.0  # 12-TET deviation, clamped to ±50
    display_cents: float = 0.0  # Scale deviation (or 12-TET without a scale), clamped to ±50
    is_running: bool = False
    step_label: str | None = None  # e.g. "07 : E -14"
    scale_description: str | None = None
    scale_steps: tuple[float, ...] | None = None  # Raw steps relative to C
    anchored_steps: tuple[float, ...] | None = None  # Steps relative to the root
    root_index: int = ROOT_INDEX
    a4_reference: float = A4_REFERENCE
    level_db: float = -math.inf  # Input level of the last frame in dBFS

    @property
    def has_signal(self) -> bool:
        return self.frequency > 0


class TunerEngine:
    """
    Single tuner engine shared by all presentation bindings.

    Subscribers are called synchronously on the thread that produced the
    state (the audio thread for frames, the caller's thread for control
    changes) and must hand the state off without blocking.
    """

    def __init__(
        self,
        sample_rate: float = SAMPLE_RATE,
        settings: TunerSettings | None = None,
    ):
        """
        Initialize engine.

        Args:
            sample_rate: Audio sample rate in Hz
            settings: Initial configuration (defaults when None)
        """
        settings = settings or TunerSettings()

        self._analyzer = SpectralAnalyzer(sample_rate=sample_rate, threshold_db=settings.threshold_db)
        self._estimator = PitchEstimator(reference=settings.a4_reference)
        self._smoother = MeasurementSmoother(alpha=settings.smoothing_alpha)
        self._scale = ScaleModel(root_index=settings.root_index)
        self._smoothing_alpha = settings.smoothing_alpha
        self._scale_path = ""

        # Replaced, never mutated, so the audio thread can iterate without a lock
        self._subscribers: tuple[StateCallback, ...] = ()
        self._running = False
        self._state = self._idle_state(self._scale.snapshot)

    # -- Observation -------------------------------------------------------

    @property
    def state(self) -> TunerState:
        """Latest published state."""
        return self._state

    def subscribe(self, callback: StateCallback) -> Callable[[], None]:
        """
        Register a state observer.

        Returns:
            Function that removes the observer again
        """
        self._subscribers = self._subscribers + (callback,)

        def unsubscribe():
            self.unsubscribe(callback)

        return unsubscribe

    def unsubscribe(self, callback: StateCallback):
        self._subscribers = tuple(s for s in self._subscribers if s != callback)

    def _publish(self, state: TunerState):
        self._state = state
        for callback in self._subscribers:
            callback(state)

    # -- Audio path --------------------------------------------------------

    def process(self, samples: np.ndarray) -> TunerState:
        """
        Process one frame of mono samples.

        Gated frames publish the no-signal state without touching the
        smoothing averages. Frames whose estimate is not a usable pitch leave
        the published state as it is.

        The scale snapshot is read after the spectrum is analyzed, so a scale
        change made while the frame was analyzed is already used for it. A
        change that lands during publication shows from the next frame on.

        Args:
            samples: Mono audio samples at the engine sample rate

        Returns:
            The current TunerState after this frame
        """
        result = self._analyzer.process(samples)
        snapshot = self._scale.snapshot

        if not result.valid:
            self._publish(self._idle_state(snapshot, level_db=result.level_db))
            return self._state

        reading = self._estimator.estimate(result.frequency, snapshot)
        if reading is None:
            return self._state

        smoothed = self._smoother.update(reading.frequency, reading.display_cents, reading.absolute_cents)

        self._publish(
            TunerState(
                frequency=smoothed.frequency,
                note_name=reading.note_name,
                absolute_cents=smoothed.absolute_cents,
                display_cents=smoothed.display_cents,
                is_running=self._running,
                step_label=reading.step_label if snapshot.is_active else None,
                a4_reference=self._estimator.reference,
                level_db=result.level_db,
                **self._scale_fields(snapshot),
            )
        )
        return self._state

    # -- Scale control -----------------------------------------------------

    @property
    def scale_definition(self) -> ScaleDefinition | None:
        return self._scale.definition

    @property
    def scale_snapshot(self) -> ScaleSnapshot:
        return self._scale.snapshot

    @property
    def root_index(self) -> int:
        return self._scale.root_index

    def load_scale(self, definition: ScaleDefinition, path: str | Path | None = None):
        """Replace the active scale."""
        snapshot = self._scale.set_scale(definition)
        self._scale_path = str(path) if path else ""
        logger.info("Loaded scale %r with %d steps", definition.description, definition.step_count)
        self._publish_scale(snapshot)

    def import_scl(self, path: str | Path) -> ScaleDefinition:
        """
        Read a .scl file and make it the active scale.

        The previous scale stays active if reading fails.

        Raises:
            FileNotFoundError: If the file doesn't exist
            ScaleParseError: If the file is not a valid Scala file
        """
        definition = read_scl(path)
        self.load_scale(definition, path=Path(path).absolute())
        return definition

    def clear_scale(self):
        """Return to plain 12-TET readings."""
        snapshot = self._scale.clear()
        self._scale_path = ""
        self._publish_scale(snapshot)

    def set_root(self, root_index: int):
        """
        Select the root pitch class (0=C ... 11=B) and re-anchor the scale.

        Raises:
            InvalidInputError: If the root is outside 0..11
        """
        snapshot = self._scale.set_root(root_index)
        self._publish_scale(snapshot)

    def _publish_scale(self, snapshot: ScaleSnapshot):
        state = self._state
        fields = self._scale_fields(snapshot)
        if not snapshot.is_active:
            fields["step_label"] = None
            if state.has_signal:
                fields["display_cents"] = state.absolute_cents
        self._publish(replace(state, **fields))

    # -- Configuration -----------------------------------------------------

    @property
    def sample_rate(self) -> float:
        return self._analyzer.sample_rate

    def set_sample_rate(self, sample_rate: float):
        self._analyzer.set_sample_rate(sample_rate)

    @property
    def a4_reference(self) -> float:
        return self._estimator.reference

    def set_a4_reference(self, hz: float) -> float:
        """
        Set the A4 calibration, clamped to [200, 1000] Hz.

        Returns:
            The reference actually applied

        Raises:
            InvalidInputError: If hz is not a positive finite number
        """
        reference = clamp_a4_reference(hz)
        self._estimator.set_reference(reference)
        self._publish(replace(self._state, a4_reference=reference))
        return reference

    def cycle_a4(self) -> float:
        """Step through the 438/440/442 Hz presets; other values go back to 440."""
        current = self._estimator.reference
        if current in A4_PRESETS:
            reference = A4_PRESETS[(A4_PRESETS.index(current) + 1) % len(A4_PRESETS)]
        else:
            reference = A4_REFERENCE
        return self.set_a4_reference(reference)

    @property
    def threshold_db(self) -> float:
        return self._analyzer.threshold_db

    def set_threshold_db(self, threshold_db: float) -> float:
        """
        Set the level gate in dBFS, clamped to [-90, 0].

        Raises:
            InvalidInputError: If the threshold is NaN or infinite
        """
        return self._analyzer.set_threshold_db(threshold_db)

    @property
    def smoothing_alpha(self) -> float:
        return self._smoothing_alpha

    def set_smoothing_alpha(self, alpha: float) -> float:
        """
        Set the smoothing coefficient, clamped to [0.05, 0.5].

        Raises:
            InvalidInputError: If alpha is NaN or infinite
        """
        self._smoothing_alpha = clamp_finite(alpha, SMOOTHING_ALPHA_MIN, SMOOTHING_ALPHA_MAX, "Smoothing alpha")
        self._smoother.set_alpha(self._smoothing_alpha)
        return self._smoothing_alpha

    @property
    def settings(self) -> TunerSettings:
        """Current configuration, e.g. for saving."""
        return TunerSettings(
            smoothing_alpha=self._smoothing_alpha,
            threshold_db=self._analyzer.threshold_db,
            a4_reference=self._estimator.reference,
            root_index=self._scale.root_index,
            last_scale_path=self._scale_path,
        )

    # -- Lifecycle ---------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self):
        if self._running:
            return
        self._running = True
        self._publish(replace(self._state, is_running=True))

    def stop(self):
        """Stop and forget smoothing history."""
        self._running = False
        self._smoother.reset()
        self._publish(self._idle_state(self._scale.snapshot))

    # -- Helpers -----------------------------------------------------------

    def _scale_fields(self, snapshot: ScaleSnapshot) -> dict:
        definition = snapshot.definition
        return {
            "scale_description": definition.description if definition else None,
            "scale_steps": definition.steps if definition else None,
            "anchored_steps": snapshot.anchored,
            "root_index": snapshot.root_index,
        }

    def _idle_state(self, snapshot: ScaleSnapshot, level_db: float = -math.inf) -> TunerState:
        return TunerState(
            is_running=self._running,
            a4_reference=self._estimator.reference,
            level_db=level_db,
            **self._scale_fields(snapshot),
        )
