"""Tests for Scala (.scl) parsing and writing."""

import math

import pytest

from microtuner.errors import InvalidStepError, ScaleError, ScaleParseError
from microtuner.scala import (
    create_scale,
    decode_scl_bytes,
    parse_scl,
    parse_step,
    parse_step_text,
    read_scl,
    serialize_scl,
)
from microtuner.scale import ScaleDefinition

FIFTH = 1200 * math.log2(3 / 2)

PYTHAGOREAN_PENTATONIC = """! pyth_pent.scl
!
Pythagorean pentatonic
 5
!
 9/8
 81/64
 3/2
 27/16
 2/1
"""


class TestParseStep:
    """Single step tokens."""

    @pytest.mark.parametrize("a,b", [(3, 2), (5, 4), (9, 8), (81, 64), (7, 4), (15, 8), (1, 1), (2, 1)])
    def test_ratio(self, a, b):
        assert parse_step(f"{a}/{b}") == pytest.approx(1200 * math.log2(a / b), abs=1e-6)

    def test_cents(self):
        assert parse_step("701.955") == pytest.approx(701.955)
        assert parse_step("701.955c") == pytest.approx(701.955)
        assert parse_step("701,955") == pytest.approx(701.955)
        assert parse_step("100.0 cents") == pytest.approx(100.0)

    @pytest.mark.parametrize("token", ["", "abc", "3/0", "0/2", "-3/2", "1/x", "nan", "inf"])
    def test_invalid(self, token):
        assert parse_step(token) is None


class TestParseScl:
    """Whole file parsing."""

    def test_fifth_scale(self):
        """The 2/1 period is dropped and the unison added."""
        definition = parse_scl("Test\n3\n0.0\n3/2\n2/1\n")

        assert definition.description == "Test"
        assert definition.steps == pytest.approx((0.0, FIFTH))
        assert definition.step_count == 2

    def test_pythagorean_pentatonic(self):
        definition = parse_scl(PYTHAGOREAN_PENTATONIC)

        assert definition.description == "Pythagorean pentatonic"
        assert definition.step_count == 5
        assert definition.steps[0] == 0.0
        assert definition.steps[1] == pytest.approx(1200 * math.log2(9 / 8))
        assert definition.steps[3] == pytest.approx(FIFTH)

    def test_inline_comments(self):
        text = "My scale ! a comment\n2 ; two steps\n100.0 ! semitone\n3/2 ; fifth\n"
        definition = parse_scl(text)

        assert definition.description == "My scale"
        assert definition.steps == pytest.approx((0.0, 100.0, FIFTH))

    def test_malformed_step_lines_are_skipped(self):
        definition = parse_scl("Test\n3\n100.0\nnot a step\n200.0\n300.0\n400.0\n")
        assert definition.steps == pytest.approx((0.0, 100.0, 200.0, 300.0))

    def test_fewer_lines_than_count(self):
        definition = parse_scl("Test\n12\n100.0\n")
        assert definition.steps == pytest.approx((0.0, 100.0))

    def test_only_unison(self):
        """A file whose steps all fall outside the period keeps the unison."""
        definition = parse_scl("Octave\n1\n2/1\n")
        assert definition.steps == (0.0,)
        assert definition.step_count == 1

    def test_normalization(self):
        """Steps are filtered to [0, 1200), sorted and deduplicated."""
        definition = parse_scl("Test\n6\n700\n100\n100.0000001\n1300\n-5\n1200.0\n")
        assert definition.steps == pytest.approx((0.0, 100.0, 700.0))

    def test_crlf_and_bom(self):
        definition = parse_scl("\ufeffTest\r\n1\r\n3/2\r\n")
        assert definition.description == "Test"
        assert definition.steps == pytest.approx((0.0, FIFTH))

    def test_missing_description(self):
        with pytest.raises(ScaleParseError):
            parse_scl("! only comments\n!\n")

    def test_missing_count(self):
        with pytest.raises(ScaleParseError):
            parse_scl("Description only\n")

    def test_invalid_count(self):
        with pytest.raises(ScaleParseError):
            parse_scl("Test\nmany\n100.0\n")

    def test_count_with_trailing_text(self):
        definition = parse_scl("Test\n1 steps\n100.0\n")
        assert definition.steps == pytest.approx((0.0, 100.0))


class TestDecoding:
    """Byte decoding of scale files."""

    def test_utf8_with_bom(self):
        assert decode_scl_bytes(b"\xef\xbb\xbfTest\r\n") == "Test\n"

    def test_utf16(self):
        data = "Café scale\n1\n3/2\n".encode("utf-16")
        assert decode_scl_bytes(data) == "Café scale\n1\n3/2\n"

    def test_latin1(self):
        assert decode_scl_bytes(b"Caf\xe9\r1\r") == "Café\n1\n"

    def test_mac_roman(self):
        """0x8E is e-acute in MacRoman and a control code in Latin-1."""
        assert decode_scl_bytes(b"Caf\x8e\n") == "Café\n"

    def test_read_scl(self, tmp_path):
        path = tmp_path / "fifth.scl"
        path.write_bytes("Fifth\r\n1\r\n3/2\r\n".encode("utf-16"))

        definition = read_scl(path)
        assert definition.description == "Fifth"
        assert definition.steps == pytest.approx((0.0, FIFTH))

    @pytest.mark.parametrize("data", [
        b"\xff\xfeT\x00e\x00\x00",  # odd byte count
        b"\xff\xfe\x00\xd8\x41\x00",  # unpaired surrogate
    ])
    def test_malformed_utf16(self, data):
        with pytest.raises(ScaleParseError):
            decode_scl_bytes(data)

    def test_read_truncated_utf16_file(self, tmp_path):
        path = tmp_path / "broken.scl"
        path.write_bytes("Fifth\n1\n3/2\n".encode("utf-16")[:-1])

        with pytest.raises(ScaleParseError):
            read_scl(path)

    def test_read_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            read_scl(tmp_path / "missing.scl")


class TestSerialize:
    """Writing scale files."""

    def test_format(self):
        definition = ScaleDefinition.from_steps("Fifth", [0.0, FIFTH])
        text = serialize_scl(definition)
        lines = text.splitlines()

        assert lines[0] == "Fifth"
        assert lines[1] == "2"
        assert "701.955001c" in lines
        assert lines[-1] == "2/1"

    def test_name_header(self):
        definition = ScaleDefinition.from_steps("Fifth", [FIFTH])
        text = serialize_scl(definition, name="fifth.scl")

        assert text.startswith("! fifth.scl\n")
        assert parse_scl(text).description == "Fifth"

    @pytest.mark.parametrize("steps", [
        [0.0],
        [0.0, FIFTH],
        [i * 100.0 for i in range(12)],
        [0.0, 111.731, 203.91, 315.641, 386.314, 498.045, 582.512, 701.955, 813.686, 884.359, 968.826, 1088.269],
    ])
    def test_round_trip(self, steps):
        definition = ScaleDefinition.from_steps("Round trip", steps)
        parsed = parse_scl(serialize_scl(definition))

        assert parsed.description == definition.description
        assert parsed.step_count == definition.step_count
        assert parsed.steps == pytest.approx(definition.steps, abs=1e-6)

    @pytest.mark.parametrize("description", [
        "Just major (5-limit), C/E/G",
        "Werckmeister III: 1/4 comma",
        "Ré mineur # 7 \"notes\"",
    ])
    def test_round_trip_keeps_description(self, description):
        definition = ScaleDefinition.from_steps(description, [0.0, 386.3137])
        parsed = parse_scl(serialize_scl(definition, name="test.scl"))

        assert parsed.description == description

    def test_description_with_comment_marker_is_refused(self):
        """A ';' would end the description line, so such a scale is never built."""
        with pytest.raises(ScaleError):
            create_scale("Just ; major", "386.3137")


class TestStepText:
    """Steps typed by the user."""

    def test_mixed_tokens(self):
        steps = parse_step_text("100 200; 3/2\n 386,3")
        assert steps == pytest.approx((0.0, 100.0, 200.0, 386.3, FIFTH))

    def test_trailing_commas(self):
        assert parse_step_text("100, 200,") == pytest.approx((0.0, 100.0, 200.0))

    def test_invalid_token(self):
        with pytest.raises(InvalidStepError) as excinfo:
            parse_step_text("100 abc 300")
        assert excinfo.value.token == "abc"
        assert "abc" in str(excinfo.value)

    @pytest.mark.parametrize("text", ["", "   ", "0", "1200 2/1"])
    def test_no_usable_steps(self, text):
        with pytest.raises(InvalidStepError):
            parse_step_text(text)

    def test_create_scale(self):
        definition = create_scale("  Custom  ", "3/2")
        assert definition.description == "Custom"
        assert definition.steps == pytest.approx((0.0, FIFTH))

    def test_create_scale_blank_description(self):
        with pytest.raises(ScaleError):
            create_scale("  ", "3/2")
