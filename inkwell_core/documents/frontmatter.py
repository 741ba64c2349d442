"""
Inkwell library to split and render markdown documents with YAML front matter

A document may start with a front matter block which holds the metadata of
the document, i.e. its title, description, tags and author. The block is
delimited by lines containing three hyphens only, e.g.:

.. code-block::

    ---
    title: Building a REST API
    tags: [python, rest]
    description: Concepts of REST and a first small service
    ---

    # Building a REST API
    ...

Documents without a front matter block are accepted, too. Their title
is taken from the first level-one heading of the markdown body then.
"""

from typing import Any, Dict, Iterable, List, NamedTuple, Optional, Tuple

import yaml

from .outline import outline


FRONT_MATTER_DELIMITER = "---"
FRONT_MATTER_END_MARKERS = ("---", "...")


class DocumentError(ValueError):
    """
    Exception raised when a markdown document can't be interpreted as an article
    """


class ParsedDocument(NamedTuple):
    title: str
    body: str
    description: Optional[str] = None
    tags: List[str] = []
    author: Optional[str] = None
    slug: Optional[str] = None


def split_front_matter(text: str) -> Tuple[Dict[str, Any], str]:
    """
    Split a markdown document into its front matter metadata and the remaining body

    :param text: full content of the markdown document
    :return: tuple of the metadata mapping (empty if absent) and the body
    :raises DocumentError: when the front matter is unterminated, invalid YAML or no mapping
    """

    text = text.lstrip("\ufeff")
    lines = text.splitlines(keepends=True)
    if not lines or lines[0].rstrip() != FRONT_MATTER_DELIMITER:
        return {}, text

    for index, line in enumerate(lines[1:], start=1):
        if line.rstrip() in FRONT_MATTER_END_MARKERS:
            raw_metadata = "".join(lines[1:index])
            body = "".join(lines[index + 1:]).lstrip("\r\n")
            break
    else:
        raise DocumentError("The front matter block is not terminated by a '---' line.")

    try:
        metadata = yaml.safe_load(raw_metadata)
    except yaml.YAMLError as exc:
        raise DocumentError(f"The front matter block is no valid YAML: {exc}") from exc
    if metadata is None:
        return {}, body
    if not isinstance(metadata, dict):
        raise DocumentError(f"The front matter block must be a mapping, not {type(metadata).__name__}.")
    return metadata, body


def _optional_text(metadata: Dict[str, Any], key: str) -> Optional[str]:
    value = metadata.get(key)
    if value is None:
        return None
    if isinstance(value, (dict, list)):
        raise DocumentError(f"The front matter field {key!r} must be a plain value.")
    return str(value).strip() or None


def _tag_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [tag.strip() for tag in value.split(",") if tag.strip()]
    if isinstance(value, list) and all(not isinstance(tag, (dict, list)) for tag in value):
        return [str(tag).strip() for tag in value if tag is not None and str(tag).strip()]
    raise DocumentError("The front matter field 'tags' must be a list or a comma-separated string.")


def parse_document(text: str) -> ParsedDocument:
    """
    Interpret a markdown document as an article

    :param text: full content of the markdown document (front matter is optional)
    :return: article fields found in the front matter and the body
    :raises DocumentError: when the front matter is broken or no title can be determined
    """

    metadata, body = split_front_matter(text)
    title = _optional_text(metadata, "title") or outline(body).title
    if not title:
        raise DocumentError("The document has neither a 'title' in its front matter nor a level-one heading.")
    return ParsedDocument(
        title=title,
        body=body,
        description=_optional_text(metadata, "description"),
        tags=_tag_list(metadata.get("tags")),
        author=_optional_text(metadata, "author"),
        slug=_optional_text(metadata, "slug")
    )


def render_document(
        title: str,
        body: str,
        description: Optional[str] = None,
        tags: Iterable[str] = (),
        author: Optional[str] = None
) -> str:
    """
    Render the fields of an article as markdown document with a YAML front matter block
    """

    metadata: Dict[str, Any] = {"title": title}
    if description:
        metadata["description"] = description
    tags = list(tags)
    if tags:
        metadata["tags"] = tags
    if author:
        metadata["author"] = author
    dump = yaml.safe_dump(metadata, sort_keys=False, allow_unicode=True, default_flow_style=False, width=1 << 16)
    return f"{FRONT_MATTER_DELIMITER}\n{dump}{FRONT_MATTER_DELIMITER}\n\n{body}"
