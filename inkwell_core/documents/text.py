"""
Text helpers to create URL-friendly identifiers
"""

import re
import unicodedata
from typing import Callable, Optional


DEFAULT_SLUG = "article"
MAX_SLUG_LENGTH = 255

_NON_ALPHANUMERIC = re.compile(r"[^a-z0-9]+")


def slugify(text: str, max_length: int = MAX_SLUG_LENGTH, default: Optional[str] = DEFAULT_SLUG) -> str:
    """
    Transform an arbitrary string into a lowercase slug like ``rest-api-basics``

    Non-ASCII characters are decomposed first, so that accented letters
    keep their base letter, while everything else is dropped completely.
    Any run of other characters is collapsed into one hyphen.

    :param text: arbitrary input text, e.g. the title of an article
    :param max_length: maximal length of the resulting slug
    :param default: value returned if nothing usable remains (may be ``None``)
    :return: slug that matches ``[a-z0-9]+(-[a-z0-9]+)*`` (or the default)
    """

    normalized = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
    slug = _NON_ALPHANUMERIC.sub("-", normalized.lower()).strip("-")
    slug = slug[:max_length].rstrip("-")
    return slug or default


def unique_slug(base: str, is_taken: Callable[[str], bool], max_length: int = MAX_SLUG_LENGTH) -> str:
    """
    Return the base slug or the first free variant with a numeric suffix (``-2``, ``-3``, ...)
    """

    if not is_taken(base):
        return base
    counter = 2
    while True:
        suffix = f"-{counter}"
        candidate = base[:max_length - len(suffix)].rstrip("-") + suffix
        if not is_taken(candidate):
            return candidate
        counter += 1
