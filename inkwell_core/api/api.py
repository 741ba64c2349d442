"""
Combined Inkwell REST API definitions

This API may provide multiple versions of certain endpoints.
Take a look into the different API definitions to see which
functionality they provide. Each version is mounted below its
own prefix, e.g. ``/v1``, while ``/versions`` lists all of them.
"""

import logging.config
import contextlib
from typing import Any, Callable, Dict, Optional, Type, Union

import fastapi
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import auth, base, versioning
from .routers import router
from .. import schemas, __version__
from ..persistence import database
from ..settings import Settings


DEFAULT_EXCEPTION_HANDLERS = {
    StarletteHTTPException: base.APIException.handle,
    RequestValidationError: base.handle_request_validation_error,
    Exception: base.handle_generic_exception
}

LICENSE_INFO = {
    "name": "MIT License",
    "url": "https://opensource.org/licenses/MIT"
}


API_V1_DOC = """Inkwell REST API definition version 1

This API stores markdown articles with their metadata (title, description,
author and tags) and serves them as JSON or as markdown documents with a
YAML front matter block. Reading articles and tags is open to everyone.
Creating, changing or deleting articles requires authentication using
JSON web tokens. Logging in with application name and password (see
`POST /login`) yields a token that should be included in the
`Authorization` header with the type `Bearer`.

The API tries to always return JSON-encoded data to any kind of request,
if return data is necessary for that response. The exceptions are the
markdown export (`text/markdown`), `204` (No Content), `304` (Not Modified)
and `500` (Internal Server Error), where no assumptions of the returned values
can be made, even though those responses _should_ use the schema of the
`APIError`, which is used by all error responses issued by this API.

In general, the following different `4xx` error responses are used:

1. The `400` (Bad Request) error response is returned for invalid
   requests, e.g. missing fields, malformed values or broken documents.
   The `message` field describes the problem in a human-readable way.
2. The `401` (Unauthorized) error response is encountered whenever a request
   is not properly authorized and therefore rejected. Use `POST /login`
   to gather a fresh API token in that case.
3. The `404` (Not Found) error response is returned whenever an article
   ID or slug is unknown.
4. The `409` (Conflict) error response is returned if a requested slug
   is already used by another article.
5. The `412` (Precondition Failed) error response is returned if a
   modifying request doesn't carry the current `ETag` of the article
   in its `If-Match` header, which protects against lost updates.

Take a look at the individual methods and endpoints for more information.
"""


def _make_app(
        title: str,
        version: str,
        description: str,
        license_info: Optional[Dict[str, str]] = None,
        exception_handlers: Optional[Dict[Any, Callable]] = None,
        root_redirect: bool = True,
        responses: Optional[Dict[Union[int, str], Dict[str, Any]]] = None,
        api_class: Optional[Type[fastapi.FastAPI]] = None,
        **kwargs
) -> fastapi.FastAPI:
    if api_class is None:
        api_class = fastapi.FastAPI
    app = api_class(
        title=title,
        version=version,
        description=description,
        license_info=license_info or LICENSE_INFO,
        responses=responses or {400: {"model": schemas.APIError}},
        **kwargs
    )

    handlers = exception_handlers or DEFAULT_EXCEPTION_HANDLERS
    for exc in handlers:
        app.add_exception_handler(exc, handlers[exc])

    if root_redirect:
        @app.get("/", include_in_schema=False)
        async def redirect_root():
            return fastapi.responses.RedirectResponse("./docs")

    return app


def create_app(
        settings: Optional[Settings] = None,
        configure_logging: bool = True,
        configure_database: bool = True
) -> fastapi.FastAPI:
    """
    Create a new ``FastAPI`` instance using the specified settings and switches

    This function is conveniently used to allow overwriting the settings
    before launching the application as well as to allow multiple ``FastAPI``
    instances in one program, which in turn makes unit testing much easier.

    :param settings: optional Settings instance (would be created if not present)
    :param configure_logging: switch whether to configure logging
    :param configure_database: switch whether to configure the database
    :return: new ``FastAPI`` instance
    """

    @contextlib.asynccontextmanager
    async def lifespan(_: fastapi.FastAPI):
        logger.info("Starting API...")
        yield
        logger.info("Shutting down...")

    if settings is None:
        settings = Settings()

    if configure_logging:
        logging.config.dictConfig(settings.logging.model_dump())
    logger = logging.getLogger(__name__)
    logger.debug("Starting application...")

    auth.configure(settings.server.allow_weak_insecure_password_hashes)
    if configure_database:
        database.init(settings.database.connection, settings.database.debug_sql)

    app = _make_app(
        title="Inkwell REST API",
        version=__version__,
        description=__doc__,
        apis={
            1: _make_app(
                title="Inkwell REST API v1",
                version=__version__,
                description=API_V1_DOC,
                api_class=base.APIWithoutValidationError,
                responses={400: {"model": schemas.APIError}, 401: {"model": schemas.APIError}}
            )
        },
        logger=logger,
        license_info=LICENSE_INFO,
        responses={400: {"model": schemas.APIError}},
        lifespan=lifespan,
        api_class=versioning.VersionedFastAPI
    )

    assert isinstance(app, versioning.VersionedFastAPI), "'VersionedFastAPI' instance required"
    app.state.settings = settings
    for sub_app in app.apis.values():
        sub_app.state.settings = settings
    app.add_router(router)

    app.finish()
    return app


class APIWrapper:
    """
    Wrapper class around the FastAPI main object, accessible via the ``app`` property

    There should be only one global instance of this object, which should only
    export its functionality to hold the ``app`` property. This wrapper can be
    used to allow easy command-line usage via ``uvicorn`` calls. Example:

    .. code-block::

        uvicorn inkwell_core.api:api.app
    """

    def __init__(self):
        self._app: Optional[fastapi.FastAPI] = None

    def get_app(self) -> fastapi.FastAPI:
        return self.app

    def set_app(self, application: fastapi.FastAPI):
        if not isinstance(application, fastapi.FastAPI):
            raise TypeError
        self._app = application

    @property
    def app(self) -> fastapi.FastAPI:
        """
        Return the ``app`` instance (or create it with default settings if it doesn't exist)
        """

        if self._app is not None:
            return self._app
        self._app = create_app()
        return self._app


api = APIWrapper()
