# docmemory/memory/chunker.py

import logging
import re
from typing import List, Tuple


logger = logging.getLogger(__name__)

# Longest run of characters counted as a single unit. Ordinary words fit in
# one unit; longer runs (URLs, identifiers, base64, text extracted without
# spaces) count one unit per slice.
_MAX_UNIT_CHARS = 8

# CJK ideographs, kana, hangul, CJK punctuation and fullwidth forms: one
# unit per character
_WIDE = (
    "\u3001-\u303f\u3040-\u30ff\u3400-\u4dbf\u4e00-\u9fff"
    "\uac00-\ud7af\uf900-\ufaff\uff00-\uffef"
)

_UNIT = re.compile(f"[{_WIDE}]|[^\\s{_WIDE}]{{1,{_MAX_UNIT_CHARS}}}")

# Units ending a sentence or a clause. Sentence ends are preferred cut points.
_SENTENCE_END = re.compile("[.!?\u3002\uff01\uff1f][\"')\\]\u300d\u300f]*$")
_CLAUSE_END = re.compile("[;:,\u3001\uff0c\uff1b\uff1a][\"')\\]\u300d\u300f]*$")


def count_units(text: str) -> int:
    """
    Size of ``text`` in chunking units.

    A unit approximates a model token: a whitespace-delimited word of up to
    eight characters, each further slice of eight characters of a longer
    run, or a single CJK character.
    """
    return sum(1 for _ in _UNIT.finditer(text))


def chunk_text(text: str, max_chunk_size: int) -> List[str]:
    """
    Split text into ordered chunks of at most ``max_chunk_size`` units.

    Two passes:
    1. lines   → every input line is cut into pieces of at most
                 max_chunk_size // 2 units, preferring sentence ends
    2. merging → consecutive lines are packed into chunks up to
                 max_chunk_size; a line is never re-split

    Guarantees:
    • deterministic output for identical input and budget
    • no chunk exceeds the budget, with or without whitespace in the text
    • no empty chunks
    • joining the chunks reproduces the input, up to whitespace at the cuts
    """

    if max_chunk_size <= 0:
        raise ValueError(f"Invalid chunk size: {max_chunk_size}")

    if not text or not text.strip():
        logger.debug("Chunking skipped: empty text")
        return []

    lines = split_lines(text, max(1, max_chunk_size // 2))

    chunks = merge_lines(lines, max_chunk_size)

    logger.info(
        "Chunking completed",
        extra={
            "total_units": count_units(text),
            "chunk_size": max_chunk_size,
            "lines": len(lines),
            "chunks_created": len(chunks),
        },
    )

    return chunks


# ============================================================
# PASS 1: LINES
# ============================================================

def split_lines(text: str, max_line_size: int) -> List[str]:

    lines = []

    for raw_line in text.replace("\r\n", "\n").replace("\r", "\n").split("\n"):

        spans = [m.span() for m in _UNIT.finditer(raw_line)]

        start = 0

        while start < len(spans):

            end = _cut_point(raw_line, spans, start, max_line_size)

            # Slice the original line so spacing inside a line is kept
            lines.append(raw_line[spans[start][0]:spans[end - 1][1]])

            start = end

    return lines


def _cut_point(
    line: str,
    spans: List[Tuple[int, int]],
    start: int,
    budget: int,
) -> int:
    """
    End index (exclusive) of the next line starting at unit ``start``.

    Cuts after the last sentence end inside the window, else after the last
    clause end, else at the budget. Boundaries in the first half of the
    window are ignored so lines do not shrink below half the budget.
    """

    end = start + budget

    if end >= len(spans):
        return len(spans)

    floor = start + max(1, budget // 2)

    for pattern in (_SENTENCE_END, _CLAUSE_END):

        for i in range(end - 1, floor - 2, -1):

            if pattern.search(line[spans[i][0]:spans[i][1]]):
                return i + 1

    return end


# ============================================================
# PASS 2: PARAGRAPHS
# ============================================================

def merge_lines(lines: List[str], max_chunk_size: int) -> List[str]:

    chunks = []

    current: List[str] = []
    current_size = 0

    for line in lines:

        size = count_units(line)

        if current and current_size + size > max_chunk_size:

            chunks.append("\n".join(current))

            current = []
            current_size = 0

        current.append(line)
        current_size += size

    if current:
        chunks.append("\n".join(current))

    return chunks
