"""
Generic helper library for the core REST API
"""

from typing import Any, Callable, Dict, Iterable, List, Optional, Type

import pydantic
import sqlalchemy
import sqlalchemy.orm
from sqlalchemy.sql import func

from .base import BadRequest, Conflict, NotFound
from .dependency import MinimalRequestData
from .. import schemas
from ..documents import DocumentError, parse_document, slugify, unique_slug
from ..persistence import models


def return_one(
        object_id: int,
        model: Type[models.Base],
        session: sqlalchemy.orm.Session
) -> models.Base:
    """
    Return the object of a given model that's identified by its object ID

    :param object_id: internal ID (primary key in the database) of the model
    :param model: class of a SQLAlchemy model
    :param session: database session which should be used to perform the query
    :return: resulting entity as SQLAlchemy model
    :raises NotFound: when the specified object ID returned no result
    """

    obj = session.get(model, object_id)
    if obj is None:
        raise NotFound(f"{model.__name__} with ID {object_id!r}")
    return obj


def paginate(
        results: List,
        limit: Optional[pydantic.NonNegativeInt] = None,
        page: Optional[pydantic.NonNegativeInt] = None
) -> List:
    """
    Select one page of results, based on the page size of `limit`

    If no limit is given, the page will be ignored due to its missing
    size specification and all results will be returned instead.
    """

    if limit and page:
        return results[limit*page:limit*(page+1)]
    elif limit:
        return results[:limit]
    return results


def search_models(
        model: Type[models.Base],
        local: MinimalRequestData,
        specialized_item_filter: Optional[Callable[[models.Base], bool]] = None,
        limit: Optional[pydantic.NonNegativeInt] = None,
        page: Optional[pydantic.NonNegativeInt] = None,
        descending: Optional[bool] = False,
        converter: Optional[Callable[[models.Base], pydantic.BaseModel]] = None,
        **kwargs
) -> List[pydantic.BaseModel]:
    """
    Return the schemas of all models that equal all kwargs and pass the special filter function

    :param model: class of a SQLAlchemy model
    :param local: contextual local data
    :param specialized_item_filter: callable function to filter the list of models
        explicitly with some specialized metrics (e.g. custom fields or relations)
    :param limit: limit the number of total results (capped by the configured maximum)
    :param page: select a page of results, based on the page size of `limit`; if no
        limit is given, the page will be ignored due to its missing size specification
    :param descending: reverse the order of results received from the database (the
        item filter will process the reversed results, which however shouldn't matter)
    :param converter: optional callable to create the schema of a model (defaults to
        the ``schema`` property of the model)
    :param kwargs: dict of extra attribute checks on the model (empty values in the
        dict are ignored and won't be treated as check for ``None`` in the model)
    :return: list of schemas of all models that equal all kwargs and passed the filter function
    """

    query = local.session.query(model)
    for k in kwargs:
        if kwargs[k] is not None:
            query = query.filter_by(**{k: kwargs[k]})
    if descending:
        query = query.order_by(sqlalchemy.desc(model.id))
    else:
        query = query.order_by(model.id)
    if limit:
        limit = min(limit, local.config.general.max_page_size)
    converter = converter or (lambda obj: obj.schema)
    results = [obj for obj in query.all() if specialized_item_filter is None or specialized_item_filter(obj)]
    return [converter(obj) for obj in paginate(results, limit, page)]


def get_or_create_tags(names: Iterable[str], session: sqlalchemy.orm.Session) -> List[models.Tag]:
    """
    Return the tag models for the given names, creating (but not committing) missing ones
    """

    tags = []
    for name in names:
        tag = session.query(models.Tag).filter_by(name=name).one_or_none()
        if tag is None:
            tag = models.Tag(name=name)
            session.add(tag)
        tags.append(tag)
    return tags


def is_slug_taken(slug: str, session: sqlalchemy.orm.Session, exclude_id: Optional[int] = None) -> bool:
    query = session.query(models.Article).filter_by(slug=slug)
    if exclude_id is not None:
        query = query.filter(models.Article.id != exclude_id)
    return query.first() is not None


def resolve_slug(
        requested: Optional[str],
        title: str,
        session: sqlalchemy.orm.Session,
        exclude_id: Optional[int] = None
) -> str:
    """
    Return the requested slug if it's still free or derive a unique one from the title

    :raises Conflict: when the explicitly requested slug is used by another article
    """

    if requested:
        if is_slug_taken(requested, session, exclude_id):
            raise Conflict(
                f"The slug {requested!r} is already used by another article.",
                f"Rejected slug: {requested!r}"
            )
        return requested
    return unique_slug(slugify(title), lambda s: is_slug_taken(s, session, exclude_id))


def apply_article_values(
        article: models.Article,
        values: Dict[str, Any],
        session: sqlalchemy.orm.Session,
        max_body_length: int
):
    """
    Set the given fields of the article, resolving tag names and recounting words

    :raises BadRequest: when the new body exceeds the maximum body length
    """

    body = values.get("body")
    if body is not None and len(body) > max_body_length:
        raise BadRequest(
            f"The article body is too long. At most {max_body_length} characters are allowed.",
            f"length={len(body)}"
        )

    for key in ("title", "description", "author", "body", "published"):
        if key in values:
            setattr(article, key, values[key])
    if "tags" in values:
        article.tags = get_or_create_tags(values["tags"], session)
        article.modified = func.now()
    if "body" in values:
        article.count_words()


def add_new_article(
        creation: schemas.ArticleCreation,
        session: sqlalchemy.orm.Session,
        max_body_length: int
) -> models.Article:
    """
    Add a new article to the session and flush it, but don't commit the transaction

    :raises BadRequest: when the body exceeds the maximum body length
    :raises Conflict: when the explicitly requested slug is already taken
    """

    values = creation.model_dump()
    article = models.Article(slug=resolve_slug(values.pop("slug"), creation.title, session))
    apply_article_values(article, values, session, max_body_length)
    session.add(article)
    session.flush()
    return article


def parse_article_document(content: str, published: Optional[bool] = None) -> schemas.ArticleCreation:
    """
    Convert a markdown document with optional YAML front matter into an article creation

    A slug given in the front matter is turned into a valid slug first.

    :raises BadRequest: when the document has no title, broken front matter or invalid fields
    """

    try:
        parsed = parse_document(content)
    except DocumentError as exc:
        raise BadRequest(str(exc), "Failed to parse the markdown document") from exc

    values = {
        "title": parsed.title,
        "body": parsed.body,
        "description": parsed.description,
        "author": parsed.author,
        "tags": parsed.tags,
        "slug": slugify(parsed.slug, default=None) if parsed.slug else None
    }
    if published is not None:
        values["published"] = published
    try:
        return schemas.ArticleCreation(**values)
    except pydantic.ValidationError as exc:
        msgs = "; ".join(".".join(map(str, e["loc"])) + ": " + e["msg"] for e in exc.errors())
        raise BadRequest(f"The document can't be used as article: {msgs}", str(exc)) from exc
