"""
Exceptions raised by the microtuner core.

Each class is one outcome a caller may want to handle differently:
a malformed file keeps the previous scale, a name collision offers
rename/replace, and invalid text input is shown back to the user.
"""

from pathlib import Path


class ScaleError(ValueError):
    """Base class for scale related failures."""


class ScaleParseError(ScaleError):
    """Scala text could not be parsed into a scale definition."""


class InvalidStepError(ScaleError):
    """A manually entered step could not be interpreted."""

    def __init__(self, token: str, reason: str):
        self.token = token
        self.reason = reason
        super().__init__(f"Invalid step '{token}': {reason}")


class InvalidInputError(ValueError):
    """A numeric setting was given text that is not a usable number."""


class ScaleExistsError(FileExistsError):
    """Saving would overwrite an existing scale file."""

    def __init__(self, path: Path):
        self.path = Path(path)
        super().__init__(f"Scale file already exists: {self.path}")
