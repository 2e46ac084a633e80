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

"""Boundary-aware text chunking with token estimates.

Splits file text into overlapping windows sized in estimated tokens. Token
counts use a fixed characters-per-token ratio, so no tokenizer is needed:

    chunks = chunk_text(source, max_tokens=500, overlap_tokens=50)

Window ends prefer, in order:
1. A sentence boundary (``.``, ``!`` or ``?`` followed by whitespace) within
   100 characters of the target end
2. The nearest whitespace before, then after, the target end
3. The raw target end

Markdown files are split on ATX headers first (``chunk_markdown``), and only
sections that exceed the budget go through the sliding window.
"""

import math
import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

CHARS_PER_TOKEN = 4

# Half-width of the sentence-boundary search window, in characters
BOUNDARY_SEARCH_RADIUS = 100

_SENTENCE_END = re.compile(r"[.!?]+\s+")
_HEADER = re.compile(r"^(#{1,6})\s+(.+)")

MARKDOWN_EXTENSIONS = {".md", ".mdx", ".markdown"}


@dataclass
class TextChunk:
    """A slice of a file's text."""

    content: str
    index: int
    start_char: int
    end_char: int
    estimated_tokens: int
    start_line: int
    end_line: int
    header_hierarchy: List[str] = field(default_factory=list)


def estimate_tokens(text: str) -> int:
    """Estimate the token count of text (ceil of trimmed length / 4)."""
    trimmed = text.strip() if text else ""
    if not trimmed:
        return 0
    return math.ceil(len(trimmed) / CHARS_PER_TOKEN)


def _line_number(text: str, char_pos: int) -> int:
    return text.count("\n", 0, char_pos) + 1


def _find_split_point(text: str, target: int, min_pos: int, max_pos: int) -> int:
    """Pick a chunk end near ``target`` inside ``[min_pos, max_pos]``."""
    target = max(min_pos, min(max_pos, target))

    search_start = max(0, target - BOUNDARY_SEARCH_RADIUS)
    search_end = min(len(text), target + BOUNDARY_SEARCH_RADIUS)
    window = text[search_start:search_end]

    boundaries = [m.end() for m in _SENTENCE_END.finditer(window)]
    if boundaries:
        relative_target = target - search_start
        closest = min(boundaries, key=lambda b: abs(b - relative_target))
        absolute = search_start + closest
        if min_pos <= absolute <= max_pos:
            return absolute

    for i in range(target, min_pos - 1, -1):
        if i < len(text) and text[i].isspace():
            return i + 1

    for i in range(target, min(max_pos + 1, len(text))):
        if text[i].isspace():
            return i + 1

    return target


def chunk_text(text: str, max_tokens: int = 500, overlap_tokens: int = 50) -> List[TextChunk]:
    """Split text into overlapping, boundary-aware chunks.

    Args:
        text: Text to split
        max_tokens: Token budget per chunk
        overlap_tokens: Tokens shared between consecutive chunks

    Returns:
        Ordered chunks. Empty for empty or whitespace-only text.
    """
    if not text or not text.strip():
        return []

    max_chars = max_tokens * CHARS_PER_TOKEN
    overlap_chars = overlap_tokens * CHARS_PER_TOKEN
    length = len(text)

    if estimate_tokens(text) <= max_tokens:
        return [
            TextChunk(
                content=text,
                index=0,
                start_char=0,
                end_char=length,
                estimated_tokens=estimate_tokens(text),
                start_line=1,
                end_line=_line_number(text, length),
            )
        ]

    chunks: List[TextChunk] = []
    pos = 0
    while pos < length:
        target_end = pos + max_chars
        if target_end >= length:
            end = length
        else:
            min_end = pos + int(max_chars * 0.5)
            max_end = min(length, pos + int(max_chars * 1.2))
            end = _find_split_point(text, target_end, min_end, max_end)

        content = text[pos:end].strip()
        if content:
            chunks.append(
                TextChunk(
                    content=content,
                    index=len(chunks),
                    start_char=pos,
                    end_char=end,
                    estimated_tokens=estimate_tokens(content),
                    start_line=_line_number(text, pos),
                    end_line=_line_number(text, end),
                )
            )

        # The last window already reached the end; another one would be a
        # strict subset of it.
        if end >= length:
            break

        # A window shorter than the overlap cannot step back; continue from
        # its end so the rest of the text still lands in a chunk.
        step = end - pos - overlap_chars
        pos = end if step <= 0 else pos + step

    return chunks


def _code_fence_spans(text: str) -> List[Tuple[int, int]]:
    spans = []
    open_at: Optional[int] = None
    offset = 0
    for line in text.split("\n"):
        if line.strip().startswith("```"):
            if open_at is None:
                open_at = offset
            else:
                spans.append((open_at, offset + len(line)))
                open_at = None
        offset += len(line) + 1
    return spans


def _frontmatter_end(text: str) -> int:
    """Offset just past a leading ``---`` frontmatter block, or 0."""
    if not text.startswith("---"):
        return 0
    lines = text.split("\n")
    offset = len(lines[0]) + 1
    for line in lines[1:]:
        offset += len(line) + 1
        if line.strip() == "---":
            return min(offset, len(text))
    return 0


def chunk_markdown(
    text: str, max_tokens: int = 500, overlap_tokens: int = 50
) -> List[TextChunk]:
    """Split markdown on headers, sub-chunking sections that are too large.

    Headers inside fenced code blocks are ignored. Each chunk records the
    header path leading to it. Text without headers falls back to
    ``chunk_text``.
    """
    if not text or not text.strip():
        return []

    body_start = _frontmatter_end(text)
    fences = _code_fence_spans(text)

    headers: List[Tuple[int, int, str]] = []  # (offset, level, title)
    offset = 0
    for line in text.split("\n"):
        if offset >= body_start:
            match = _HEADER.match(line.strip())
            if match and not any(start <= offset <= end for start, end in fences):
                headers.append((offset, len(match.group(1)), match.group(2).strip()))
        offset += len(line) + 1

    if not headers:
        return chunk_text(text, max_tokens, overlap_tokens)

    # Section boundaries: the preamble (frontmatter included) and each header
    starts = [0] + [h[0] for h in headers if h[0] > 0]
    ends = starts[1:] + [len(text)]

    chunks: List[TextChunk] = []
    stack: List[Tuple[int, str]] = []
    header_at = {h[0]: (h[1], h[2]) for h in headers}

    for start, end in zip(starts, ends):
        if start in header_at:
            level, title = header_at[start]
            while stack and stack[-1][0] >= level:
                stack.pop()
            stack.append((level, title))
        hierarchy = [title for _, title in stack]

        section = text[start:end]
        for piece in chunk_text(section, max_tokens, overlap_tokens):
            content = piece.content.strip()
            if not content:
                continue
            chunks.append(
                TextChunk(
                    content=content,
                    index=len(chunks),
                    start_char=start + piece.start_char,
                    end_char=start + piece.end_char,
                    estimated_tokens=estimate_tokens(content),
                    start_line=_line_number(text, start + piece.start_char),
                    end_line=_line_number(text, start + piece.end_char),
                    header_hierarchy=list(hierarchy),
                )
            )

    return chunks


def chunk_file_text(
    text: str, file_name: str, max_tokens: int = 500, overlap_tokens: int = 50
) -> List[TextChunk]:
    """Chunk text, routing markdown files to the header-aware splitter."""
    lowered = file_name.lower()
    if any(lowered.endswith(ext) for ext in MARKDOWN_EXTENSIONS):
        return chunk_markdown(text, max_tokens, overlap_tokens)
    return chunk_text(text, max_tokens, overlap_tokens)
