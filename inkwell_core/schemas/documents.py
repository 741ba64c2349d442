"""
Inkwell schemas describing the structure of markdown documents
"""

from typing import List, Optional

import pydantic


__all__ = ["CodeBlock", "DocumentOutline", "Heading", "Table"]


class Heading(pydantic.BaseModel):
    level: pydantic.conint(ge=1, le=6)
    text: str
    anchor: str
    line: pydantic.PositiveInt


class CodeBlock(pydantic.BaseModel):
    language: Optional[str] = None
    content: str
    line: pydantic.PositiveInt


class Table(pydantic.BaseModel):
    header: List[str]
    rows: List[List[str]]
    line: pydantic.PositiveInt


class DocumentOutline(pydantic.BaseModel):
    title: Optional[str] = None
    headings: List[Heading]
    code_blocks: List[CodeBlock]
    tables: List[Table]
    words: pydantic.NonNegativeInt
    reading_time: pydantic.NonNegativeInt
