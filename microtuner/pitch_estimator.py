"""
Frequency to pitch conversion.

Maps a frequency to the nearest 12-TET note relative to the A4 reference
and, when a scale is active, to the nearest step of the root-anchored scale.
"""

import math
from collections.abc import Sequence
from dataclasses import dataclass

from .constants import (
    A4_MIDI_NOTE,
    A4_REFERENCE,
    A_OFFSET,
    CENTS_PER_OCTAVE,
    CENTS_PER_SEMITONE,
    MIN_PITCH_FREQUENCY,
    NOTE_NAMES,
    OCTAVE,
)
from .scale import ScaleSnapshot, wrap_cents


@dataclass(frozen=True)
class PitchReading:
    """Instantaneous pitch reading for one frequency estimate."""

    frequency: float
    note: int  # MIDI note number of the nearest 12-TET note
    note_name: str  # e.g. "A4"
    absolute_cents: float  # Deviation from the nearest 12-TET note
    display_cents: float  # Deviation from the nearest scale step, or absolute_cents
    step_index: int | None = None
    step_label: str | None = None


def note_number_to_name(note: int) -> tuple[str, int]:
    """Convert a MIDI note number to note name and octave."""
    return NOTE_NAMES[note % OCTAVE], note // OCTAVE - 1


def frequency_to_note(frequency: float, reference: float = A4_REFERENCE) -> tuple[int, float]:
    """
    Convert frequency to the nearest 12-TET note and its cents deviation.

    Exact quarter tones round down, so the deviation lies in (-50, +50].
    """
    midi = A4_MIDI_NOTE + OCTAVE * math.log2(frequency / reference)
    note = math.ceil(midi - 0.5)
    ref_freq = reference * 2 ** ((note - A4_MIDI_NOTE) / OCTAVE)
    cents = CENTS_PER_OCTAVE * math.log2(frequency / ref_freq)
    return note, cents


def cents_from_root(frequency: float, reference: float, root_index: int) -> float:
    """Pitch class of a frequency in cents above the root, in [0, 1200)."""
    cents_from_a4 = CENTS_PER_OCTAVE * math.log2(frequency / reference)
    cents_from_c = wrap_cents(cents_from_a4 + A_OFFSET * CENTS_PER_SEMITONE)
    return wrap_cents(cents_from_c - (root_index % OCTAVE) * CENTS_PER_SEMITONE)


def nearest_step(cents: float, anchored: Sequence[float]) -> tuple[int, float]:
    """
    Find the anchored step closest to a root-relative pitch.

    Distance is circular over the octave. Steps are scanned in order and a
    later step only wins with a strictly smaller distance, so on an exact tie
    the lower index is chosen.

    Returns:
        Tuple of (step index, signed deviation in cents from that step)
    """
    best_index = 0
    best_delta = math.inf
    for i, step in enumerate(anchored):
        delta = cents - step
        if delta > CENTS_PER_OCTAVE / 2:
            delta -= CENTS_PER_OCTAVE
        elif delta < -CENTS_PER_OCTAVE / 2:
            delta += CENTS_PER_OCTAVE
        if abs(delta) < abs(best_delta):
            best_index = i
            best_delta = delta
    return best_index, best_delta


def step_label(index: int, step_cents: float, root_index: int) -> str:
    """
    Label a scale step by its nearest 12-TET note from the root.

    Example: "04 : E -14" for a just major third over a C root.
    """
    semitone = math.floor(step_cents / CENTS_PER_SEMITONE + 0.5)
    deviation = step_cents - semitone * CENTS_PER_SEMITONE
    if deviation > CENTS_PER_SEMITONE / 2:
        deviation -= CENTS_PER_SEMITONE
    elif deviation < -CENTS_PER_SEMITONE / 2:
        deviation += CENTS_PER_SEMITONE
    name = NOTE_NAMES[(root_index + semitone) % OCTAVE]
    # Half away from zero, so +0.5 shows as +1 and -0.5 as -1
    deviation_int = int(math.copysign(math.floor(abs(deviation) + 0.5), deviation))
    return f"{index:02d} : {name} {deviation_int:+d}"


class PitchEstimator:
    """Converts frequency estimates to pitch readings."""

    def __init__(self, reference: float = A4_REFERENCE):
        self.reference = reference

    def set_reference(self, reference: float):
        self.reference = reference

    def estimate(self, frequency: float, scale: ScaleSnapshot | None = None) -> PitchReading | None:
        """
        Build a pitch reading for a frequency.

        Args:
            frequency: Estimated frequency in Hz
            scale: Scale snapshot; scale-relative cents are computed when it
                has anchored steps

        Returns:
            PitchReading, or None if the frequency is not finite or not
            above 20 Hz
        """
        if not math.isfinite(frequency) or frequency <= MIN_PITCH_FREQUENCY:
            return None

        note, cents12 = frequency_to_note(frequency, self.reference)
        name, octave = note_number_to_name(note)

        if scale is None or not scale.is_active:
            return PitchReading(
                frequency=frequency,
                note=note,
                note_name=f"{name}{octave}",
                absolute_cents=cents12,
                display_cents=cents12,
            )

        anchored = scale.anchored
        pitch = cents_from_root(frequency, self.reference, scale.root_index)
        index, delta = nearest_step(pitch, anchored)
        return PitchReading(
            frequency=frequency,
            note=note,
            note_name=f"{name}{octave}",
            absolute_cents=cents12,
            display_cents=delta,
            step_index=index,
            step_label=step_label(index, anchored[index], scale.root_index),
        )
