"""
Scale library: named .scl files in an application data directory.

The directory listing is the index; there is no manifest. Each scale is
stored as <slug>.scl where the slug is derived from its description.
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

from PySide6.QtCore import QStandardPaths

from .errors import ScaleExistsError, ScaleParseError
from .scala import read_scl, serialize_scl
from .scale import ScaleDefinition

if TYPE_CHECKING:
    from .tuner import TunerEngine

logger = logging.getLogger(__name__)

SCALE_SUFFIX = ".scl"
PLACEHOLDER_NAME = "untitled"

_DISALLOWED = re.compile(r"[^A-Za-z0-9 _-]")
_DASH_RUNS = re.compile(r"-{2,}")


def slugify(text: str) -> str:
    """
    Turn a scale description into a file name stem.

    Letters, digits, dash, underscore and space are kept; anything else
    becomes a dash and repeated dashes collapse into one.
    """
    slug = _DISALLOWED.sub("-", text)
    slug = _DASH_RUNS.sub("-", slug)
    slug = slug.strip(" -")
    return slug or PLACEHOLDER_NAME


def default_library_dir() -> Path:
    """Per-user directory for saved scales."""
    base = QStandardPaths.writableLocation(QStandardPaths.StandardLocation.GenericDataLocation)
    if not base:
        base = str(Path.home() / ".local" / "share")
    return Path(base) / "microtuner" / "scales"


@dataclass(frozen=True)
class ScaleRecord:
    """A scale file found in the library."""

    path: Path
    description: str
    step_count: int
    modified: datetime

    @property
    def name(self) -> str:
        """File name without extension."""
        return self.path.stem


class ScaleLibrary:
    """
    Lists, loads, saves and deletes scale files in one directory.

    All operations do blocking file I/O and must not run on the audio thread.
    """

    def __init__(self, directory: str | Path | None = None):
        self.directory = Path(directory) if directory is not None else default_library_dir()

    def path_for(self, name: str) -> Path:
        """Target path for a scale saved under the given name."""
        return self.directory / f"{slugify(name)}{SCALE_SUFFIX}"

    def list_records(self) -> list[ScaleRecord]:
        """
        List valid scale files, newest first.

        Files with equal modification time are ordered by description,
        case-insensitive. Unreadable files are skipped; if the directory
        cannot be read the library is reported as empty.
        """
        try:
            paths = [
                p for p in self.directory.iterdir()
                if p.is_file() and p.suffix.lower() == SCALE_SUFFIX
            ]
        except FileNotFoundError:
            return []
        except OSError:
            logger.warning("Cannot list scale library %s", self.directory, exc_info=True)
            return []

        records = []
        for path in paths:
            try:
                definition = read_scl(path)
                modified = datetime.fromtimestamp(path.stat().st_mtime)
            except (OSError, ScaleParseError) as exc:
                logger.info("Skipping %s: %s", path.name, exc)
                continue
            records.append(
                ScaleRecord(
                    path=path,
                    description=definition.description,
                    step_count=definition.step_count,
                    modified=modified,
                )
            )

        records.sort(key=lambda r: r.description.lower())
        records.sort(key=lambda r: r.modified, reverse=True)
        return records

    def load(
        self,
        record: ScaleRecord | str | Path,
        engine: "TunerEngine | None" = None,
    ) -> ScaleDefinition:
        """
        Read a scale from the library.

        Args:
            record: Record or path of the scale file
            engine: If given, the loaded scale becomes its active scale

        Raises:
            FileNotFoundError: If the file doesn't exist
            ScaleParseError: If the file is not a valid Scala file
        """
        path = record.path if isinstance(record, ScaleRecord) else Path(record)
        definition = read_scl(path)
        if engine is not None:
            engine.load_scale(definition, path=path)
        return definition

    def save(
        self,
        definition: ScaleDefinition,
        overwrite: bool = False,
        name: str | None = None,
    ) -> Path:
        """
        Write a scale to the library.

        Args:
            definition: Scale to save
            overwrite: Replace an existing file with the same name
            name: File name to use instead of the description

        Returns:
            Path of the written file

        Raises:
            ScaleExistsError: If the file exists and overwrite is False
        """
        path = self.path_for(name if name is not None else definition.description)
        text = serialize_scl(definition, name=path.name)

        self.directory.mkdir(parents=True, exist_ok=True)
        # Exclusive create, so a file appearing after the name was chosen is never replaced
        try:
            with path.open("w" if overwrite else "x", encoding="utf-8") as f:
                f.write(text)
        except FileExistsError as exc:
            raise ScaleExistsError(path) from exc
        logger.info("Saved scale %r to %s", definition.description, path)
        return path

    def delete(self, record: ScaleRecord | str | Path):
        """
        Remove a scale file.

        Raises:
            OSError: If the file cannot be removed
        """
        path = record.path if isinstance(record, ScaleRecord) else Path(record)
        try:
            path.unlink()
        except OSError:
            logger.warning("Cannot delete scale %s", path, exc_info=True)
            raise
        logger.info("Deleted scale %s", path)
