"""
Scala (.scl) scale file support.

File format (http://www.huygens-fokker.org/scala/scl_format.html):

    ! example.scl
    !
    Pythagorean pentatonic
     5
    !
    9/8
    81/64
    3/2
    27/16
    2/1

Lines starting with ! are comments. The first non-comment line is the
description, the next one the number of steps, followed by one step per
line given either as a ratio (a/b) or as cents (a number, optionally
suffixed with c). Inline comments after ! or ; are ignored.
"""

import math
import re
from pathlib import Path

from .constants import CENTS_PER_OCTAVE
from .errors import InvalidStepError, ScaleError, ScaleParseError
from .scale import ScaleDefinition, normalize_steps

_UTF16_BOMS = (b"\xff\xfe", b"\xfe\xff")
_C1_BYTES = re.compile(rb"[\x80-\x9f]")
_STEP_SEPARATORS = re.compile(r"[\s;]+")


def ratio_to_cents(numerator: float, denominator: float) -> float:
    """Convert a frequency ratio to cents."""
    return CENTS_PER_OCTAVE * math.log2(numerator / denominator)


def decode_scl_bytes(data: bytes) -> str:
    """
    Decode raw file contents to text with LF line endings.

    UTF-16 is used when the data starts with a UTF-16 BOM, otherwise UTF-8.
    Data that is not valid UTF-8 is read as MacRoman if it contains bytes in
    0x80-0x9F (never used for text in Latin-1), else as Latin-1.

    Raises:
        ScaleParseError: If UTF-16 data is truncated or malformed
    """
    if data.startswith(_UTF16_BOMS):
        try:
            text = data.decode("utf-16")
        except UnicodeDecodeError as exc:
            raise ScaleParseError(f"Invalid UTF-16 data: {exc.reason}") from exc
    else:
        try:
            text = data.decode("utf-8-sig")
        except UnicodeDecodeError:
            encoding = "mac_roman" if _C1_BYTES.search(data) else "latin-1"
            text = data.decode(encoding)

    text = text.lstrip("\ufeff")
    return text.replace("\r\n", "\n").replace("\r", "\n")


def _strip_comment(line: str) -> str:
    for marker in ("!", ";"):
        pos = line.find(marker)
        if pos >= 0:
            line = line[:pos]
    return line.strip()


def _content_lines(text: str):
    """Yield non-empty lines with comments removed."""
    for raw in text.split("\n"):
        line = _strip_comment(raw)
        if line:
            yield line


def parse_step(token: str) -> float | None:
    """
    Parse a single step token to cents.

    Accepts ratios ("3/2") and cents values ("701.955", "701.955c",
    "701,955"). Returns None if the token is not a usable step.
    """
    core = token.replace(",", ".").strip()
    if not core:
        return None

    if "/" in core:
        parts = [p.strip() for p in core.split("/", 1)]
        try:
            numerator = float(parts[0])
            denominator = float(parts[1])
        except ValueError:
            return None
        if denominator == 0 or numerator / denominator <= 0:
            return None
        cents = ratio_to_cents(numerator, denominator)
    else:
        # Only the first word counts, e.g. "100.0 cents" or "100.0c"
        word = core.split()[0].replace("c", "")
        try:
            cents = float(word)
        except ValueError:
            return None

    if not math.isfinite(cents):
        return None
    return cents


def parse_scl(text: str) -> ScaleDefinition:
    """
    Parse Scala text to a normalized scale definition.

    Malformed step lines are skipped. The listed count is the number of steps
    read; reading stops early when the text runs out.

    Raises:
        ScaleParseError: If the description or count line is missing, or the
            count is not an integer
    """
    if text.startswith("\ufeff"):
        text = text[1:]
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    lines = _content_lines(text)

    description = next(lines, None)
    if description is None:
        raise ScaleParseError("Missing description line")

    count_line = next(lines, None)
    if count_line is None:
        raise ScaleParseError("Missing step count line")
    try:
        count = int(count_line.split()[0])
    except ValueError as exc:
        raise ScaleParseError(f"Invalid step count: {count_line!r}") from exc

    steps: list[float] = []
    for line in lines:
        if len(steps) >= count:
            break
        cents = parse_step(line)
        if cents is not None:
            steps.append(cents)

    return ScaleDefinition.from_steps(description, steps)


def read_scl(path: str | Path) -> ScaleDefinition:
    """
    Read and parse a .scl file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ScaleParseError: If the file cannot be decoded or is not a valid
            Scala file
    """
    file_path = Path(path)
    if not file_path.exists():
        raise FileNotFoundError(f"Scale file not found: {path}")
    return parse_scl(decode_scl_bytes(file_path.read_bytes()))


def serialize_scl(definition: ScaleDefinition, name: str | None = None) -> str:
    """
    Serialize a scale definition to Scala text.

    The count includes the unison; the unison itself is implicit and the
    period is written as a closing 2/1 line. ScaleDefinition only admits
    descriptions that fit on the description line, so the text always parses
    back to the same definition.
    """
    lines = []
    if name:
        lines.append(f"! {name}")
        lines.append("!")
    lines.append(definition.description)
    lines.append(str(definition.step_count))
    lines.append("!")
    for cents in definition.steps:
        if cents == 0.0:
            continue
        lines.append(f"{cents:.6f}c")
    lines.append("2/1")
    return "\n".join(lines) + "\n"


def parse_step_text(text: str) -> tuple[float, ...]:
    """
    Parse steps typed by the user when creating or editing a scale.

    Tokens are separated by whitespace, newlines or semicolons. A comma
    inside a number is a decimal separator; a trailing one is ignored.

    Raises:
        InvalidStepError: If a token is not a ratio or cents value, or the
            text yields no step besides the unison
    """
    steps = []
    for token in _STEP_SEPARATORS.split(text.strip()):
        token = token.rstrip(",")
        if not token:
            continue
        cents = parse_step(token)
        if cents is None:
            raise InvalidStepError(token, "expected a ratio like 3/2 or cents like 701.955")
        steps.append(cents)

    normalized = normalize_steps(steps)
    if len(normalized) < 2:
        raise InvalidStepError(text.strip(), "at least one step between 0 and 1200 cents is required")
    return normalized


def create_scale(description: str, step_text: str) -> ScaleDefinition:
    """
    Build a scale definition from user input.

    Raises:
        ScaleError: If the description is blank or contains "!", ";" or a line break
        InvalidStepError: If the step text is invalid
    """
    if not description.strip():
        raise ScaleError("Scale description must not be empty")
    return ScaleDefinition.from_steps(description, parse_step_text(step_text))
