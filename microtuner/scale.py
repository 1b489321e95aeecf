"""
Scale model: scale definitions, root selection and root-anchored steps.

A scale is stored as cents offsets relative to C. The tuner works with an
anchored view of the scale in which step 0 is the selected root. The audio
thread reads the scale through an immutable ScaleSnapshot which the control
thread replaces as a whole, so a frame never sees a half-updated scale.
"""

import math
import threading
from collections.abc import Iterable
from dataclasses import dataclass

from .constants import (
    CENTS_PER_OCTAVE,
    CENTS_PER_SEMITONE,
    OCTAVE,
    ROOT_INDEX,
    STEP_TOLERANCE,
)
from .errors import InvalidInputError, ScaleError

# Characters that end the description line of a .scl file
_DESCRIPTION_BREAKS = ("!", ";", "\n", "\r")


def wrap_cents(cents: float) -> float:
    """Wrap a cents value into [0, 1200)."""
    wrapped = cents % CENTS_PER_OCTAVE
    # Float modulo of a tiny negative value can land on 1200.0
    if wrapped >= CENTS_PER_OCTAVE:
        wrapped -= CENTS_PER_OCTAVE
    return wrapped


def normalize_steps(steps: Iterable[float]) -> tuple[float, ...]:
    """
    Normalize raw steps to one period.

    Steps outside [0, 1200) are dropped, the unison is always present as
    exactly 0.0, values within 1e-6 cents of each other collapse to the
    first one and the result is sorted ascending.
    """
    in_period = sorted(
        float(s) for s in steps if math.isfinite(s) and 0.0 <= s < CENTS_PER_OCTAVE
    )
    normalized = [0.0]
    for value in in_period:
        if value - normalized[-1] <= STEP_TOLERANCE:
            continue
        normalized.append(value)
    return tuple(normalized)


def anchor_steps(steps: Iterable[float], root_index: int) -> tuple[float, ...]:
    """
    Re-base steps so that index 0 is the selected root at exactly 0 cents.

    Steps are shifted down by the root's 12-TET offset, wrapped into one
    period, translated so the smallest becomes 0 and sorted ascending.
    """
    root_offset = (root_index % OCTAVE) * CENTS_PER_SEMITONE
    shifted = [wrap_cents(s - root_offset) for s in steps]
    if not shifted:
        return ()
    lowest = min(shifted)
    return tuple(sorted(s - lowest for s in shifted))


@dataclass(frozen=True)
class ScaleDefinition:
    """
    A named scale.

    Attributes:
        description: Human readable description (Scala description line)
        steps: Normalized cents offsets from C, ascending, starting at 0.0
    """

    description: str
    steps: tuple[float, ...]

    def __post_init__(self):
        description = self.description
        if not description.strip():
            raise ScaleError("Scale description must not be empty")
        if description != description.strip():
            raise ScaleError("Scale description must not start or end with whitespace")
        for marker in _DESCRIPTION_BREAKS:
            if marker in description:
                raise ScaleError(f"Scale description must not contain {marker!r}")

    @classmethod
    def from_steps(cls, description: str, steps: Iterable[float]) -> "ScaleDefinition":
        """Create a definition from raw steps, normalizing them."""
        return cls(description=description.strip(), steps=normalize_steps(steps))

    @property
    def step_count(self) -> int:
        """Number of steps per period, counting the unison."""
        return len(self.steps)


@dataclass(frozen=True)
class ScaleSnapshot:
    """Immutable view of the scale state read once per audio frame."""

    definition: ScaleDefinition | None = None
    root_index: int = ROOT_INDEX
    anchored: tuple[float, ...] | None = None

    @property
    def is_active(self) -> bool:
        return bool(self.anchored)


def validate_root_index(root_index: int) -> int:
    """
    Check a root pitch class (0=C ... 11=B).

    Raises:
        InvalidInputError: If the value is not an integer in 0..11
    """
    try:
        valid = (
            not isinstance(root_index, bool)
            and int(root_index) == root_index
            and 0 <= root_index < OCTAVE
        )
    except (TypeError, ValueError, OverflowError):
        valid = False
    if not valid:
        raise InvalidInputError(f"Root must be a pitch class from 0 to 11, got {root_index!r}")
    return int(root_index)


def build_snapshot(definition: ScaleDefinition | None, root_index: int) -> ScaleSnapshot:
    """Build a snapshot with the anchored steps derived for the given root."""
    root_index = root_index % OCTAVE
    if definition is None or not definition.steps:
        return ScaleSnapshot(definition=definition, root_index=root_index, anchored=None)
    return ScaleSnapshot(
        definition=definition,
        root_index=root_index,
        anchored=anchor_steps(definition.steps, root_index),
    )


class ScaleModel:
    """
    Holds the active scale definition and root selection.

    Writers (control thread) serialize on a lock and publish a new snapshot
    with a single attribute assignment. Readers (audio thread) only read the
    `snapshot` attribute and never take the lock.
    """

    def __init__(self, root_index: int = ROOT_INDEX):
        self._lock = threading.Lock()
        self._snapshot = build_snapshot(None, validate_root_index(root_index))

    @property
    def snapshot(self) -> ScaleSnapshot:
        """Latest published snapshot."""
        return self._snapshot

    @property
    def definition(self) -> ScaleDefinition | None:
        return self._snapshot.definition

    @property
    def root_index(self) -> int:
        return self._snapshot.root_index

    @property
    def anchored_steps(self) -> tuple[float, ...] | None:
        return self._snapshot.anchored

    def set_scale(self, definition: ScaleDefinition) -> ScaleSnapshot:
        """Replace the active scale and recompute the anchored steps."""
        with self._lock:
            self._snapshot = build_snapshot(definition, self._snapshot.root_index)
            return self._snapshot

    def clear(self) -> ScaleSnapshot:
        """Remove the active scale."""
        with self._lock:
            self._snapshot = build_snapshot(None, self._snapshot.root_index)
            return self._snapshot

    def set_root(self, root_index: int) -> ScaleSnapshot:
        """
        Select the root pitch class (0=C ... 11=B) and re-anchor.

        Raises:
            InvalidInputError: If the root is outside 0..11; the current
                snapshot is kept
        """
        root_index = validate_root_index(root_index)
        with self._lock:
            self._snapshot = build_snapshot(self._snapshot.definition, root_index)
            return self._snapshot
