"""
Inkwell library to split, inspect and re-publish markdown documents
"""

from .frontmatter import DocumentError, ParsedDocument, parse_document, render_document, split_front_matter
from .outline import outline, reading_time
from .text import slugify, unique_slug
