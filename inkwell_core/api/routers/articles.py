"""
Inkwell router module for /articles requests
"""

import logging
from typing import List, Optional

import pydantic
from fastapi import Depends
from fastapi.responses import PlainTextResponse, Response

from ._router import router
from ..base import BadRequest, NotFound
from ..dependency import LocalRequestData, MinimalRequestData
from ..etag import ETag
from .. import helpers, versioning
from ...documents import outline, render_document
from ...persistence import models
from ... import schemas


logger = logging.getLogger(__name__)

_ERROR_RESPONSES = {
    400: {"model": schemas.APIError},
    401: {"model": schemas.APIError},
    404: {"model": schemas.APIError},
    409: {"model": schemas.APIError},
    412: {"model": schemas.APIError}
}


def _to_schema(article: models.Article, local: MinimalRequestData) -> schemas.Article:
    return article.to_schema(local.config.general.words_per_minute)


def _location(local: MinimalRequestData, article_id: int) -> str:
    prefix = local.request.url.path.rsplit("/articles", 1)[0]
    return f"{prefix}/articles/{article_id}"


def _create_article(creation: schemas.ArticleCreation, local: LocalRequestData) -> schemas.Article:
    article = helpers.add_new_article(creation, local.session, local.config.general.max_body_length)
    local.session.commit()

    logger.info(f"Application {local.origin_app.name!r} created article {article.id} ({article.slug!r})")
    result = _to_schema(article, local)
    local.response.headers["Location"] = _location(local, article.id)
    ETag(local.request).add_header(local.response, result)
    return result


@router.get("/articles", tags=["Articles"], response_model=List[schemas.Article])
@versioning.versions(minimal=1)
async def search_for_articles(
        id: Optional[pydantic.NonNegativeInt] = None,  # noqa
        slug: Optional[pydantic.constr(max_length=255)] = None,
        tag: Optional[pydantic.constr(max_length=64)] = None,
        author: Optional[pydantic.constr(max_length=255)] = None,
        published: Optional[bool] = None,
        search: Optional[pydantic.constr(min_length=1, max_length=255)] = None,
        limit: Optional[pydantic.NonNegativeInt] = None,
        page: Optional[pydantic.NonNegativeInt] = None,
        descending: Optional[bool] = False,
        local: MinimalRequestData = Depends(MinimalRequestData)
):
    """
    Return all articles that fulfill *all* constraints given as query parameters

    The `search` parameter matches case-insensitive substrings of the title
    or the description. If no query parameters are given, this endpoint
    will just return all currently known articles ordered by their ID.
    """

    def extended_filter(article: models.Article) -> bool:
        if tag is not None and tag.strip().lower() not in [t.name for t in article.tags]:
            return False
        if search is not None:
            needle = search.lower()
            return needle in article.title.lower() or needle in (article.description or "").lower()
        return True

    return helpers.search_models(
        models.Article,
        local,
        specialized_item_filter=extended_filter,
        limit=limit,
        page=page,
        descending=descending,
        converter=lambda a: _to_schema(a, local),
        id=id,
        slug=slug,
        author=author,
        published=published
    )


@router.post(
    "/articles",
    tags=["Articles"],
    status_code=201,
    response_model=schemas.Article,
    responses={k: _ERROR_RESPONSES[k] for k in (400, 401, 409)}
)
@versioning.versions(minimal=1)
async def create_new_article(
        article: schemas.ArticleCreation,
        local: LocalRequestData = Depends(LocalRequestData)
):
    """
    Create a new article

    Missing or invalid fields are rejected with a `400` error. Without an
    explicit `slug`, a unique slug will be derived from the title.

    * `400`: if the request body is invalid or the body is too long
    * `409`: if the explicitly requested slug has already been taken
    """

    return _create_article(article, local)


@router.post(
    "/articles/import",
    tags=["Articles"],
    status_code=201,
    response_model=schemas.Article,
    responses={k: _ERROR_RESPONSES[k] for k in (400, 401, 409)}
)
@versioning.versions(minimal=1)
async def import_markdown_article(
        document: schemas.ArticleImport,
        local: LocalRequestData = Depends(LocalRequestData)
):
    """
    Create a new article from a markdown document with optional YAML front matter

    The title is taken from the front matter or the first level-one heading.

    * `400`: if the document has no title, broken front matter or invalid fields
    * `409`: if the slug given in the front matter has already been taken
    """

    return _create_article(helpers.parse_article_document(document.content, document.published), local)


@router.get(
    "/articles/slug/{slug}",
    tags=["Articles"],
    response_model=schemas.Article,
    responses={404: _ERROR_RESPONSES[404]}
)
@versioning.versions(minimal=1)
async def get_article_by_slug(
        slug: pydantic.constr(max_length=255),
        local: MinimalRequestData = Depends(MinimalRequestData)
):
    """
    Return the article identified by its unique slug

    * `404`: if the slug is unknown
    """

    article = local.session.query(models.Article).filter_by(slug=slug).one_or_none()
    if article is None:
        raise NotFound(f"Article with slug {slug!r}")
    result = _to_schema(article, local)
    etag = ETag(local.request)
    etag.compare(result)
    etag.add_header(local.response, result)
    return result


@router.get(
    "/articles/{article_id}",
    tags=["Articles"],
    response_model=schemas.Article,
    responses={404: _ERROR_RESPONSES[404]}
)
@versioning.versions(minimal=1)
async def get_article_by_id(
        article_id: pydantic.NonNegativeInt,
        local: MinimalRequestData = Depends(MinimalRequestData)
):
    """
    Return the article of a specific article ID

    A `304` response is returned if the `If-Match` header carries the current `ETag`.

    * `404`: if the article ID is unknown
    """

    result = _to_schema(helpers.return_one(article_id, models.Article, local.session), local)
    etag = ETag(local.request)
    etag.compare(result)
    etag.add_header(local.response, result)
    return result


@router.put(
    "/articles/{article_id}",
    tags=["Articles"],
    response_model=schemas.Article,
    responses=_ERROR_RESPONSES
)
@versioning.versions(minimal=1)
async def replace_existing_article(
        article_id: pydantic.NonNegativeInt,
        article: schemas.ArticleUpdate,
        local: LocalRequestData = Depends(LocalRequestData)
):
    """
    Replace all fields of an existing article

    The `If-Match` header must contain the current `ETag` of the article.

    * `400`: if the request body is invalid
    * `404`: if the article ID is unknown
    * `409`: if the explicitly requested slug has already been taken
    * `412`: if the conditional request failed
    """

    model = helpers.return_one(article_id, models.Article, local.session)
    ETag(local.request).compare(_to_schema(model, local))

    values = article.model_dump()
    model.slug = helpers.resolve_slug(values.pop("slug"), article.title, local.session, exclude_id=model.id)
    helpers.apply_article_values(model, values, local.session, local.config.general.max_body_length)
    local.session.add(model)
    local.session.commit()

    logger.info(f"Application {local.origin_app.name!r} replaced article {model.id}")
    result = _to_schema(model, local)
    ETag(local.request).add_header(local.response, result)
    return result


@router.patch(
    "/articles/{article_id}",
    tags=["Articles"],
    response_model=schemas.Article,
    responses=_ERROR_RESPONSES
)
@versioning.versions(minimal=1)
async def patch_existing_article(
        article_id: pydantic.NonNegativeInt,
        patch: schemas.ArticlePatch,
        local: LocalRequestData = Depends(LocalRequestData)
):
    """
    Modify selected fields of an existing article

    Omitted fields are left unchanged. Setting `slug` to `null` derives
    a new slug from the (new) title, setting `description` or `author`
    to `null` removes them. The `If-Match` header must contain the
    current `ETag` of the article.

    * `400`: if the request body is invalid or a mandatory field is set to `null`
    * `404`: if the article ID is unknown
    * `409`: if the explicitly requested slug has already been taken
    * `412`: if the conditional request failed
    """

    model = helpers.return_one(article_id, models.Article, local.session)
    ETag(local.request).compare(_to_schema(model, local))

    values = patch.model_dump(exclude_unset=True)
    for key in ("title", "body", "tags", "published"):
        if key in values and values[key] is None:
            raise BadRequest(f"The field {key!r} can't be removed from an article.", f"{key}=null")

    if "slug" in values:
        model.slug = helpers.resolve_slug(
            values.pop("slug"),
            values.get("title", model.title),
            local.session,
            exclude_id=model.id
        )
    helpers.apply_article_values(model, values, local.session, local.config.general.max_body_length)
    local.session.add(model)
    local.session.commit()

    logger.info(f"Application {local.origin_app.name!r} patched article {model.id}: {sorted(values)}")
    result = _to_schema(model, local)
    ETag(local.request).add_header(local.response, result)
    return result


@router.delete(
    "/articles/{article_id}",
    tags=["Articles"],
    status_code=204,
    response_class=Response,
    responses={k: _ERROR_RESPONSES[k] for k in (401, 404, 412)}
)
@versioning.versions(minimal=1)
async def delete_existing_article(
        article_id: pydantic.NonNegativeInt,
        local: LocalRequestData = Depends(LocalRequestData)
):
    """
    Delete an existing article

    The `If-Match` header must contain the current `ETag` of the article.

    * `404`: if the article ID is unknown
    * `412`: if the conditional request failed
    """

    model = helpers.return_one(article_id, models.Article, local.session)
    ETag(local.request).compare(_to_schema(model, local))
    logger.info(f"Application {local.origin_app.name!r} deletes article {model.id} ({model.slug!r})")
    local.session.delete(model)
    local.session.commit()
    return Response(status_code=204)


@router.get(
    "/articles/{article_id}/outline",
    tags=["Articles"],
    response_model=schemas.DocumentOutline,
    responses={404: _ERROR_RESPONSES[404]}
)
@versioning.versions(minimal=1)
async def get_article_outline(
        article_id: pydantic.NonNegativeInt,
        local: MinimalRequestData = Depends(MinimalRequestData)
):
    """
    Return the structure of the article body: headings, fenced code blocks and tables

    * `404`: if the article ID is unknown
    """

    model = helpers.return_one(article_id, models.Article, local.session)
    result = outline(model.body, local.config.general.words_per_minute)
    if result.title is None:
        result.title = model.title
    return result


@router.get(
    "/articles/{article_id}/markdown",
    tags=["Articles"],
    response_class=PlainTextResponse,
    responses={200: {"content": {"text/markdown": {}}}, 404: _ERROR_RESPONSES[404]}
)
@versioning.versions(minimal=1)
async def get_article_markdown(
        article_id: pydantic.NonNegativeInt,
        local: MinimalRequestData = Depends(MinimalRequestData)
):
    """
    Return the article as markdown document with a YAML front matter block

    * `404`: if the article ID is unknown
    """

    model = helpers.return_one(article_id, models.Article, local.session)
    content = render_document(
        title=model.title,
        body=model.body,
        description=model.description,
        tags=[tag.name for tag in model.tags],
        author=model.author
    )
    return PlainTextResponse(
        content,
        media_type="text/markdown",
        headers={"Content-Disposition": f'inline; filename="{model.slug}.md"'}
    )
