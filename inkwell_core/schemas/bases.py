"""
Inkwell schemas for the base system

This module contains schemas for articles, their tags and the
applications which are allowed to manage articles via the API.
"""

from typing import Any, List, Optional

import pydantic


__all__ = [
    "Application",
    "Article",
    "ArticleCreation",
    "ArticleImport",
    "ArticlePatch",
    "ArticleUpdate",
    "Tag",
    "Token",
    "MAX_TAGS_PER_ARTICLE",
    "SLUG_PATTERN",
    "TAG_PATTERN"
]


SLUG_PATTERN = r"^[a-z0-9]+(-[a-z0-9]+)*$"
TAG_PATTERN = r"^[a-z0-9][a-z0-9+#._-]*$"
MAX_TAGS_PER_ARTICLE = 32

slug_spec = pydantic.constr(pattern=SLUG_PATTERN, max_length=255)
tag_spec = pydantic.constr(pattern=TAG_PATTERN, max_length=64)
title_spec = pydantic.constr(strip_whitespace=True, min_length=1, max_length=255)
body_spec = pydantic.constr(min_length=1)


def normalize_tags(value: Any) -> Any:
    """
    Strip and lowercase incoming tag names and drop duplicates while keeping their order

    Values of unexpected types are passed through unchanged, so
    that the regular field validation can reject them properly.
    """

    if not isinstance(value, (list, tuple)):
        return value
    result = []
    for tag in value:
        if isinstance(tag, str):
            tag = tag.strip().lower()
        if tag not in result:
            result.append(tag)
    return result


class Token(pydantic.BaseModel):
    access_token: str
    token_type: str


class Application(pydantic.BaseModel):
    id: pydantic.NonNegativeInt
    name: pydantic.constr(max_length=255)
    created: pydantic.NonNegativeInt


class Tag(pydantic.BaseModel):
    name: tag_spec
    articles: pydantic.NonNegativeInt


class Article(pydantic.BaseModel):
    id: pydantic.NonNegativeInt
    slug: slug_spec
    title: pydantic.constr(max_length=255)
    description: Optional[pydantic.constr(max_length=1024)] = None
    author: Optional[pydantic.constr(max_length=255)] = None
    tags: List[tag_spec]
    body: str
    published: bool
    reading_time: pydantic.NonNegativeInt
    created: pydantic.NonNegativeInt
    modified: pydantic.NonNegativeInt


class _TaggedArticle(pydantic.BaseModel):
    @pydantic.field_validator("tags", mode="before", check_fields=False)
    @classmethod
    def normalize_tag_names(cls, value: Any) -> Any:
        return normalize_tags(value)


class ArticleCreation(_TaggedArticle):
    title: title_spec
    body: body_spec
    description: Optional[pydantic.constr(max_length=1024)] = None
    author: Optional[pydantic.constr(max_length=255)] = None
    tags: pydantic.conlist(tag_spec, max_length=MAX_TAGS_PER_ARTICLE) = []
    slug: Optional[slug_spec] = None
    published: bool = True


class ArticleUpdate(ArticleCreation):
    pass


class ArticlePatch(_TaggedArticle):
    title: Optional[title_spec] = None
    body: Optional[body_spec] = None
    description: Optional[pydantic.constr(max_length=1024)] = None
    author: Optional[pydantic.constr(max_length=255)] = None
    tags: Optional[pydantic.conlist(tag_spec, max_length=MAX_TAGS_PER_ARTICLE)] = None
    slug: Optional[slug_spec] = None
    published: Optional[bool] = None


class ArticleImport(pydantic.BaseModel):
    content: body_spec
    published: Optional[bool] = None
