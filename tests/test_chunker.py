# Copyright 2025 Vijaykumar Singh <singhvjd@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Tests for text and markdown chunking."""

import pytest

from coderadar.codebase.chunker import (
    chunk_file_text,
    chunk_markdown,
    chunk_text,
    estimate_tokens,
)


def _prose(sentences: int) -> str:
    return " ".join(f"Sentence number {i} talks about indexing code." for i in range(sentences))


class TestEstimateTokens:
    """Tests for the characters-per-token estimate."""

    def test_empty(self):
        assert estimate_tokens("") == 0
        assert estimate_tokens("   \n") == 0

    def test_rounds_up(self):
        assert estimate_tokens("abcd") == 1
        assert estimate_tokens("abcde") == 2

    def test_ignores_surrounding_whitespace(self):
        assert estimate_tokens("  abcd  ") == 1


class TestChunkText:
    """Tests for the sliding-window chunker."""

    def test_empty_input_yields_no_chunks(self):
        assert chunk_text("") == []
        assert chunk_text("  \n\t ") == []

    def test_small_text_is_one_chunk(self):
        text = "def foo():\n    return 1\n"
        chunks = chunk_text(text, max_tokens=100, overlap_tokens=10)

        assert len(chunks) == 1
        assert chunks[0].content == text
        assert chunks[0].index == 0
        assert chunks[0].start_line == 1
        assert chunks[0].end_line == 3

    def test_deterministic(self):
        text = _prose(60)
        first = chunk_text(text, max_tokens=50, overlap_tokens=10)
        second = chunk_text(text, max_tokens=50, overlap_tokens=10)

        assert [c.content for c in first] == [c.content for c in second]
        assert [(c.start_char, c.end_char) for c in first] == [
            (c.start_char, c.end_char) for c in second
        ]

    def test_chunks_cover_whole_text(self):
        text = _prose(80)
        chunks = chunk_text(text, max_tokens=40, overlap_tokens=8)

        assert len(chunks) > 1
        assert chunks[0].start_char == 0
        assert chunks[-1].end_char == len(text)
        for previous, current in zip(chunks, chunks[1:]):
            # Consecutive windows touch or overlap, never leave a gap
            assert current.start_char <= previous.end_char

    @pytest.mark.parametrize(
        "text",
        ["a" * 20 + " " + "b" * 29, _prose(40)],
        ids=["early-whitespace", "prose"],
    )
    def test_large_overlap_still_covers_whole_text(self, text):
        chunks = chunk_text(text, max_tokens=10, overlap_tokens=9)

        assert chunks[0].start_char == 0
        assert chunks[-1].end_char == len(text)
        for previous, current in zip(chunks, chunks[1:]):
            assert current.start_char <= previous.end_char

    def test_short_first_window_keeps_the_tail(self):
        chunks = chunk_text("a" * 20 + " " + "b" * 29, max_tokens=10, overlap_tokens=9)

        assert [c.content for c in chunks] == ["a" * 20, "b" * 29]

    def test_indexes_are_sequential(self):
        chunks = chunk_text(_prose(50), max_tokens=30, overlap_tokens=5)
        assert [c.index for c in chunks] == list(range(len(chunks)))

    def test_prefers_sentence_boundaries(self):
        chunks = chunk_text(_prose(50), max_tokens=40, overlap_tokens=5)
        for chunk in chunks[:-1]:
            assert chunk.content.endswith(".")

    def test_consecutive_chunks_overlap(self):
        chunks = chunk_text(_prose(50), max_tokens=40, overlap_tokens=10)
        for previous, current in zip(chunks, chunks[1:]):
            assert current.start_char < previous.end_char

    def test_text_without_boundaries_terminates(self):
        text = "x" * 5000
        chunks = chunk_text(text, max_tokens=100, overlap_tokens=20)

        assert chunks
        assert chunks[-1].end_char == len(text)

    def test_line_numbers_track_newlines(self):
        text = "\n".join(f"line {i} of the file." for i in range(200))
        chunks = chunk_text(text, max_tokens=50, overlap_tokens=5)

        assert chunks[0].start_line == 1
        assert chunks[-1].end_line == 200
        for chunk in chunks:
            assert chunk.start_line <= chunk.end_line


class TestChunkMarkdown:
    """Tests for header-aware markdown chunking."""

    def test_splits_on_headers(self):
        text = "# Title\n\nIntro.\n\n## Install\n\nRun it.\n\n## Usage\n\nCall it.\n"
        chunks = chunk_markdown(text, max_tokens=500, overlap_tokens=50)

        assert len(chunks) == 3
        assert chunks[1].content.startswith("## Install")
        assert chunks[1].header_hierarchy == ["Title", "Install"]
        assert chunks[2].header_hierarchy == ["Title", "Usage"]

    def test_ignores_headers_inside_code_fences(self):
        text = "# Title\n\n```bash\n# not a header\necho hi\n```\n"
        chunks = chunk_markdown(text, max_tokens=500, overlap_tokens=50)

        assert len(chunks) == 1
        assert "# not a header" in chunks[0].content

    def test_without_headers_falls_back_to_text(self):
        text = "Just a paragraph of text."
        assert [c.content for c in chunk_markdown(text)] == [c.content for c in chunk_text(text)]

    @pytest.mark.parametrize("name", ["README.md", "docs/guide.MDX", "notes.markdown"])
    def test_file_routing_uses_markdown_splitter(self, name):
        text = "# A\n\none\n\n# B\n\ntwo\n"
        assert len(chunk_file_text(text, name)) == 2

    def test_file_routing_plain_text(self):
        text = "# A\n\none\n\n# B\n\ntwo\n"
        assert len(chunk_file_text(text, "script.py")) == 1
