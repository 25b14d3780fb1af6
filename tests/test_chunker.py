"""Tests for rag.chunker: line-bounded chunking."""

import types

import pytest

from second_brain.rag.chunker import chunk_text


SAMPLES = [
    "line1\nline2\n",
    "single line without newline",
    "\n",
    "\n\n\n",
    "a\n\nb\n\n\nc",
    "aaaa\n",
    "aaaa\n\n\n",
    "x" * 40 + "\n" + "y" * 3 + "\n" + "z" * 25,
    "\n".join(f"row {i}: " + "w" * (i % 17) for i in range(200)),
    "trailing spaces   \n  leading spaces\n\ttabs\t\n",
]


class TestChunkText:
    def test_empty_input_yields_nothing(self):
        assert list(chunk_text("", 500)) == []

    def test_returns_generator(self):
        assert isinstance(chunk_text("abc", 10), types.GeneratorType)

    def test_small_text_is_one_chunk(self):
        assert list(chunk_text("line1\nline2\n", 500)) == ["line1\nline2\n"]

    @pytest.mark.parametrize("text", SAMPLES)
    @pytest.mark.parametrize("bound", [1, 3, 4, 10, 50, 500])
    def test_join_reproduces_text(self, text, bound):
        chunks = list(chunk_text(text, bound))
        assert "\n".join(chunks) == text

    @pytest.mark.parametrize("text", SAMPLES)
    @pytest.mark.parametrize("bound", [1, 3, 4, 10, 50, 500])
    def test_no_empty_chunks(self, text, bound):
        assert all(chunk for chunk in chunk_text(text, bound))

    def test_long_line_forms_its_own_chunk(self):
        long_line = "x" * 30
        chunks = list(chunk_text(f"short\n{long_line}\nend", 10))
        assert chunks == ["short", long_line, "end"]

    def test_chunks_respect_bound_when_lines_fit(self):
        text = "\n".join(["abcd"] * 20)
        for chunk in chunk_text(text, 14):
            assert len(chunk) <= 14

    def test_flush_happens_before_overflow(self):
        # "aaa\nbbb" is 7 chars; adding "\nccc" would make 11 > 8
        assert list(chunk_text("aaa\nbbb\nccc", 8)) == ["aaa\nbbb", "ccc"]

    def test_blank_lines_stay_with_previous_chunk(self):
        assert list(chunk_text("aaaa\n\nbbbb", 4)) == ["aaaa\n", "bbbb"]

    @pytest.mark.parametrize("bound", [0, -5, 2.5, True, "10"])
    def test_invalid_bound_raises(self, bound):
        with pytest.raises(ValueError):
            list(chunk_text("text", bound))
