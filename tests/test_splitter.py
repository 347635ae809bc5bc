"""Tests for the length-bounded message splitter."""

from __future__ import annotations

import re

import pytest

from welcomer.core.errors import InputTypeError, OversizeFragmentError
from welcomer.core.splitter import SplitOptions, split_message, verify_string


# =============================================================
# verify_string Tests
# =============================================================

class TestVerifyString:
    def test_returns_string(self):
        assert verify_string("hello") == "hello"

    def test_empty_allowed_by_default(self):
        assert verify_string("") == ""

    def test_rejects_non_string(self):
        with pytest.raises(InputTypeError, match="Expected a string"):
            verify_string(42)

    def test_rejects_empty_when_disallowed(self):
        with pytest.raises(InputTypeError):
            verify_string("", allow_empty=False)

    def test_custom_error_and_message(self):
        with pytest.raises(ValueError, match="nope"):
            verify_string(None, error=ValueError, message="nope")


# =============================================================
# split_message Tests
# =============================================================

class TestSplitMessage:
    def test_short_message_unchanged(self):
        assert split_message("Hello") == ["Hello"]

    def test_exact_limit_unchanged(self):
        text = "x" * 2000
        assert split_message(text) == [text]

    def test_identity_case_skips_affixes(self):
        options = SplitOptions(max_length=100, prepend=">", append="<")
        assert split_message("short", options) == ["short"]

    def test_empty_message(self):
        assert split_message("") == [""]

    def test_non_string_rejected(self):
        with pytest.raises(InputTypeError):
            split_message(["not", "text"])  # type: ignore[arg-type]

    def test_split_on_newlines(self):
        line1 = "a" * 3000
        line2 = "b" * 3000
        result = split_message(line1 + "\n" + line2, SplitOptions(max_length=4000))
        assert result == [line1, line2]

    def test_lines_are_packed_together(self):
        # 8 lines of 499 chars: three fit in 1950, four do not
        lines = [str(i) * 499 for i in range(8)]
        text = "\n".join(lines)
        result = split_message(text, SplitOptions(max_length=1950))

        assert len(result) == 3
        assert all(len(chunk) <= 1950 for chunk in result)
        assert result[0] == "\n".join(lines[:3])
        assert "\n".join(result) == text

    def test_no_boundary_raises(self):
        with pytest.raises(OversizeFragmentError) as exc_info:
            split_message("x" * 4000, SplitOptions(max_length=1950))
        assert exc_info.value.max_length == 1950
        assert exc_info.value.length == 4000

    def test_oversize_is_value_error(self):
        with pytest.raises(ValueError):
            split_message("x" * 30, SplitOptions(max_length=10))

    def test_single_pattern_boundary(self):
        text = "a" * 60 + ". " + "b" * 60
        result = split_message(text, SplitOptions(max_length=100, boundary=re.compile(r"\.\s")))
        assert result == ["a" * 60, "b" * 60]

    def test_blank_fragments_dropped(self):
        text = "a" * 50 + "\n\n\n" + "b" * 50
        result = split_message(text, SplitOptions(max_length=50))
        assert result == ["a" * 50, "b" * 50]


# =============================================================
# Boundary sequence Tests
# =============================================================

class TestBoundarySequence:
    def test_coarse_boundary_is_enough(self):
        """A finer boundary is never used when the coarser one suffices."""
        para1 = " ".join(["alpha"] * 10)  # 59 chars
        para2 = " ".join(["beta"] * 12)  # 59 chars
        text = para1 + "\n\n" + para2
        options = SplitOptions(max_length=100, boundary=["\n\n", " "])

        # Splitting on spaces as well would let words of para2 fill the
        # first fragment.
        assert split_message(text, options) == [para1, para2]

    def test_escalates_to_finer_boundary(self):
        words = " ".join(["word"] * 100)
        options = SplitOptions(max_length=50, boundary=["\n", " "])
        result = split_message(words, options)

        assert len(result) > 1
        assert all(len(chunk) <= 50 for chunk in result)
        assert " ".join(result) == words

    def test_pattern_in_sequence_keeps_matches(self):
        text = "x" * 2500
        options = SplitOptions(max_length=1200, boundary=["\n", re.compile(r".{1,1000}")])
        assert split_message(text, options) == ["x" * 1000, "x" * 1000, "x" * 500]

    def test_exhausted_sequence_raises(self):
        text = "y" * 300
        with pytest.raises(OversizeFragmentError):
            split_message(text, SplitOptions(max_length=100, boundary=["\n", " "]))

    def test_caller_sequence_not_mutated(self):
        boundaries = ["\n", " "]
        split_message("a " * 100, SplitOptions(max_length=20, boundary=boundaries))
        assert boundaries == ["\n", " "]


# =============================================================
# Prepend / append Tests
# =============================================================

class TestAffixes:
    def test_prepend_and_append(self):
        text = "x" * 30 + "\n" + "y" * 30
        options = SplitOptions(max_length=40, prepend=">", append="<")
        assert split_message(text, options) == ["x" * 30 + "<", ">" + "y" * 30]

    def test_middle_fragment_gets_both(self):
        text = "\n".join(["a" * 30, "b" * 30, "c" * 30])
        options = SplitOptions(max_length=40, prepend="> ", append=" ...")
        result = split_message(text, options)

        assert result == [
            "a" * 30 + " ...",
            "> " + "b" * 30 + " ...",
            "> " + "c" * 30,
        ]

    def test_affixes_count_toward_limit(self):
        text = "x" * 39 + "\n" + "y" * 39
        options = SplitOptions(max_length=40, prepend=">", append="<")
        result = split_message(text, options)

        assert result == ["x" * 39 + "<", ">" + "y" * 39]
        assert all(len(chunk) <= 40 for chunk in result)

    def test_piece_at_limit_with_affixes_raises(self):
        text = "x" * 40 + "\n" + "y" * 40
        options = SplitOptions(max_length=40, prepend=">", append="<")

        with pytest.raises(OversizeFragmentError) as exc_info:
            split_message(text, options)
        assert exc_info.value.max_length == 38
        assert exc_info.value.length == 40

    def test_affixes_trigger_finer_boundary(self):
        text = " ".join(["word"] * 20)
        options = SplitOptions(max_length=30, boundary=["\n", " "], prepend="> ", append=" ...")
        result = split_message(text, options)

        assert len(result) > 1
        assert all(len(chunk) <= 30 for chunk in result)
