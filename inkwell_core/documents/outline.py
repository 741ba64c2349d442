"""
Inkwell library to inspect the structure of markdown documents

This module extracts the parts of a markdown document which make up
its outline: ATX headings, fenced code blocks and pipe tables. It also
counts the prose words of a document to estimate its reading time.
Headings or tables inside fenced code blocks are not part of the outline.
"""

import re
import math
from typing import List, Optional, Set, Tuple

from .text import slugify
from .. import schemas


DEFAULT_WORDS_PER_MINUTE = 200

_FENCE_OPENING = re.compile(r"^ {0,3}(`{3,}|~{3,})(.*)$")
_HEADING = re.compile(r"^ {0,3}(#{1,6})(?:[ \t]+(.*?))?[ \t]*$")
_CLOSING_SEQUENCE = re.compile(r"(?:^|[ \t]+)#+$")
_DELIMITER_CELL = re.compile(r"^:?-+:?$")
_WORD = re.compile(r"\w[\w'’-]*")


def reading_time(
        words: int,
        words_per_minute: int = DEFAULT_WORDS_PER_MINUTE,
        non_empty: Optional[bool] = None
) -> int:
    """
    Return the estimated reading time in whole minutes (at least one for non-empty texts)

    A text consisting only of code or punctuation has no words but is not empty,
    so callers that know the text should pass `non_empty` explicitly.
    """

    if non_empty is None:
        non_empty = words > 0
    if not non_empty:
        return 0
    return max(1, math.ceil(words / words_per_minute))


def _is_closing_fence(line: str, fence: str) -> bool:
    stripped = line.strip()
    if len(line) - len(line.lstrip(" ")) > 3:
        return False
    return len(stripped) >= len(fence) and stripped == fence[0] * len(stripped)


def _split_cells(line: str) -> List[str]:
    content = line.strip()
    if content.startswith("|"):
        content = content[1:]
    if content.endswith("|") and not content.endswith("\\|"):
        content = content[:-1]

    cells = []
    current = []
    escaped = False
    for char in content:
        if escaped:
            if char != "|":
                current.append("\\")
            current.append(char)
            escaped = False
        elif char == "\\":
            escaped = True
        elif char == "|":
            cells.append("".join(current).strip())
            current = []
        else:
            current.append(char)
    if escaped:
        current.append("\\")
    cells.append("".join(current).strip())
    return cells


def _is_delimiter_row(line: str) -> bool:
    if "-" not in line:
        return False
    cells = _split_cells(line)
    return len(cells) > 0 and all(_DELIMITER_CELL.match(cell) for cell in cells)


def _heading_text(raw: Optional[str]) -> str:
    if not raw:
        return ""
    text = _CLOSING_SEQUENCE.sub("", raw)
    return text.strip()


def _make_anchor(text: str, seen: Set[str]) -> str:
    base = slugify(text, default="section")
    anchor = base
    suffix = 0
    while anchor in seen:
        suffix += 1
        anchor = f"{base}-{suffix}"
    seen.add(anchor)
    return anchor


def _read_table(lines: List[str], start: int) -> Optional[Tuple[schemas.Table, int]]:
    if start + 1 >= len(lines) or "|" not in lines[start] or not _is_delimiter_row(lines[start + 1]):
        return None
    header = _split_cells(lines[start])
    if len(header) != len(_split_cells(lines[start + 1])):
        return None

    rows = []
    end = start + 2
    while end < len(lines):
        line = lines[end]
        if not line.strip() or "|" not in line or _HEADING.match(line) or _FENCE_OPENING.match(line):
            break
        cells = _split_cells(line)
        cells = (cells + [""] * len(header))[:len(header)]
        rows.append(cells)
        end += 1
    return schemas.Table(header=header, rows=rows, line=start + 1), end


def outline(body: str, words_per_minute: int = DEFAULT_WORDS_PER_MINUTE) -> schemas.DocumentOutline:
    """
    Extract the outline of a markdown document body (without front matter)

    :param body: markdown text of the document
    :param words_per_minute: reading speed to calculate the reading time
    :return: outline containing headings, code blocks, tables and word statistics
    """

    lines = body.splitlines()
    headings: List[schemas.Heading] = []
    code_blocks: List[schemas.CodeBlock] = []
    tables: List[schemas.Table] = []
    anchors: Set[str] = set()
    words = 0

    index = 0
    while index < len(lines):
        line = lines[index]

        fence_match = _FENCE_OPENING.match(line)
        if fence_match and not (fence_match.group(1)[0] == "`" and "`" in fence_match.group(2)):
            fence, info = fence_match.group(1), fence_match.group(2).strip()
            content = []
            end = index + 1
            while end < len(lines) and not _is_closing_fence(lines[end], fence):
                content.append(lines[end])
                end += 1
            code_blocks.append(schemas.CodeBlock(
                language=info.split()[0] if info else None,
                content="\n".join(content),
                line=index + 1
            ))
            index = end + 1
            continue

        heading_match = _HEADING.match(line)
        if heading_match:
            text = _heading_text(heading_match.group(2))
            headings.append(schemas.Heading(
                level=len(heading_match.group(1)),
                text=text,
                anchor=_make_anchor(text, anchors),
                line=index + 1
            ))
            words += len(_WORD.findall(text))
            index += 1
            continue

        table = _read_table(lines, index)
        if table is not None:
            tables.append(table[0])
            for cell in table[0].header + [c for row in table[0].rows for c in row]:
                words += len(_WORD.findall(cell))
            index = table[1]
            continue

        words += len(_WORD.findall(line))
        index += 1

    title = next((h.text for h in headings if h.level == 1 and h.text), None)
    return schemas.DocumentOutline(
        title=title,
        headings=headings,
        code_blocks=code_blocks,
        tables=tables,
        words=words,
        reading_time=reading_time(words, words_per_minute, bool(body.strip()))
    )
