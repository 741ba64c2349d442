"""
Inkwell API version handling

Path operations are annotated with the API versions serving them and are
registered on the root app, which mounts every version below `/v<N>`.
"""

import logging
from typing import Callable, Dict, Optional

import fastapi
import fastapi.routing

from .. import schemas


VERSION_ANNOTATION_NAME = "_api_versions"
MAXIMAL_VERSION_ANNOTATION_NAME = "_maximal_api_version"
MINIMAL_VERSION_ANNOTATION_NAME = "_minimal_api_version"

PREFIX_FORMAT = "/v{}"


def versions(
        *annotations: int,
        minimal: Optional[int] = None,
        maximal: Optional[int] = None
) -> Callable[[Callable], Callable]:
    """
    Mark a path operation as served by the explicitly listed API versions and/or a range of them

    :raises TypeError: for non-integer versions
    :raises ValueError: for explicit versions outside the given range
    """

    for value in (*annotations, minimal, maximal):
        if value is not None and not isinstance(value, int):
            raise TypeError(f"Expected int as API version, got {value!r}")
    if minimal is not None and any(v < minimal for v in annotations):
        raise ValueError(f"Explicit API versions {annotations!r} below the minimal version {minimal}")
    if maximal is not None and any(v > maximal for v in annotations):
        raise ValueError(f"Explicit API versions {annotations!r} above the maximal version {maximal}")

    def decorator(func: Callable) -> Callable:
        for name in (VERSION_ANNOTATION_NAME, MINIMAL_VERSION_ANNOTATION_NAME, MAXIMAL_VERSION_ANNOTATION_NAME):
            assert not hasattr(func, name), f"API versions of {func.__name__!r} were already set"
        if annotations:
            setattr(func, VERSION_ANNOTATION_NAME, annotations)
        if minimal is not None:
            setattr(func, MINIMAL_VERSION_ANNOTATION_NAME, minimal)
        if maximal is not None:
            setattr(func, MAXIMAL_VERSION_ANNOTATION_NAME, maximal)
        return func

    return decorator


def is_served_by(endpoint: Callable, api_version: int) -> bool:
    explicit = getattr(endpoint, VERSION_ANNOTATION_NAME, ())
    minimal = getattr(endpoint, MINIMAL_VERSION_ANNOTATION_NAME, None)
    maximal = getattr(endpoint, MAXIMAL_VERSION_ANNOTATION_NAME, None)
    if minimal is not None and api_version < minimal:
        return False
    if maximal is not None and api_version > maximal:
        return False
    return not explicit or api_version in explicit


class VersionedFastAPI(fastapi.FastAPI):
    """
    Root app of the REST API which mounts one sub-app per API version

    Routers are added with `add_router` instead of `include_router`, so that
    each sub-app only receives the routes annotated for its version. Calling
    `finish` mounts the sub-apps and adds the `/versions` endpoint, after which
    no further routers are accepted.
    """

    def __init__(
            self,
            apis: Dict[int, fastapi.FastAPI],
            *args,
            logger: Optional[logging.Logger] = None,
            **kwargs
    ):
        super().__init__(*args, **kwargs)
        self._apis = apis
        self._logger = logger or logging.getLogger(__name__)
        self._finished = False

    @property
    def apis(self) -> Dict[int, fastapi.FastAPI]:
        return self._apis

    def finish(self):
        if self._finished:
            return

        @self.get("/versions", response_model=schemas.Versions, tags=["Miscellaneous"])
        async def get_version_info():
            return schemas.Versions(
                latest=max(self._apis.keys()),
                versions=[{"version": v, "prefix": PREFIX_FORMAT.format(v)} for v in sorted(self._apis)]
            )

        for api_version, sub_app in sorted(self._apis.items()):
            self.mount(PREFIX_FORMAT.format(api_version), sub_app)
        self._finished = True

    def add_router(self, router: fastapi.APIRouter, **kwargs):
        """
        Include the routes of the router in every sub-app whose version they are annotated for

        :raises RuntimeError: when the API has already been finished
        """

        if self._finished:
            raise RuntimeError("Can't add new routers after the API has been finally built")

        for route in router.routes:
            if not isinstance(route, fastapi.routing.APIRoute):
                self._logger.error(f"Skipping route {route!r}, it's no 'APIRoute'")
            elif not any(hasattr(route.endpoint, n) for n in (
                    VERSION_ANNOTATION_NAME, MINIMAL_VERSION_ANNOTATION_NAME, MAXIMAL_VERSION_ANNOTATION_NAME
            )):
                self._logger.warning(f"Route {route.path!r} has no API version annotation, serving it everywhere")

        kwargs.pop("prefix", None)
        for api_version, sub_app in self._apis.items():
            sub_router = fastapi.APIRouter()
            sub_router.routes.extend(
                route for route in router.routes
                if isinstance(route, fastapi.routing.APIRoute) and is_served_by(route.endpoint, api_version)
            )
            sub_app.include_router(sub_router, **kwargs)
