"""
Shared constants for the microtuner package.
"""

# Audio
SAMPLE_RATE = 44100
FFT_SIZE = 4096  # Analysis window in samples
HOP_SIZE = 2048  # Capture block size in samples

# Tuning
A4_REFERENCE = 440.0
A4_MIN = 200.0
A4_MAX = 1000.0
A4_PRESETS = (438.0, 440.0, 442.0)
A4_MIDI_NOTE = 69
A_OFFSET = 9  # A is 9 semitones above C
OCTAVE = 12
CENTS_PER_OCTAVE = 1200.0
CENTS_PER_SEMITONE = 100.0

NOTE_NAMES = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]
NO_NOTE = "–"

# Analysis
MIN_ANALYSIS_FREQUENCY = 50.0  # Bins below this are ignored (hum/DC)
MIN_PITCH_FREQUENCY = 20.0  # Estimates at or below this are rejected
LEVEL_EPSILON = 1e-12

THRESHOLD_DB = -50.0
THRESHOLD_DB_MIN = -90.0
THRESHOLD_DB_MAX = 0.0

# Smoothing
SMOOTHING_ALPHA = 0.15
SMOOTHING_ALPHA_MIN = 0.05  # Settings range
SMOOTHING_ALPHA_MAX = 0.5
FILTER_ALPHA_MIN = 0.01  # Hard limits applied inside the filter
FILTER_ALPHA_MAX = 1.0
DISPLAY_CENTS_LIMIT = 50.0

# Scales
ROOT_INDEX = 9  # A
STEP_TOLERANCE = 1e-6
