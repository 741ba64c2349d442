"""
Entity tags of articles for cached reads and conflict-free updates
"""

import json
import uuid
import hashlib
import logging
from typing import Optional

import pydantic
from fastapi import Request, Response
from fastapi.encoders import jsonable_encoder

from . import base


logger = logging.getLogger(__name__)

MUTATING_METHODS = ("PUT", "PATCH", "DELETE")


class ETag:
    """
    Entity tag handling of one request, based on the `If-Match` header only

    A tag listed in `If-Match` turns a `GET` into `304 Not Modified` and is
    required for `PUT`, `PATCH` and `DELETE`, which fail with `412` otherwise.
    The wildcard `*` matches any existing article. Weak tags never match.
    """

    def __init__(self, request: Request):
        self.request = request
        if request.headers.get("If-None-Match"):
            logger.debug(f"Ignoring unsupported 'If-None-Match' header of {request.url.path!r}")

    def add_header(self, response: Response, model: Optional[pydantic.BaseModel]) -> bool:
        tag = self.make_etag(model)
        if tag is not None:
            response.headers["ETag"] = f'"{tag}"'
        return tag is not None

    def _listed_tags(self):
        for tag in self.request.headers.get("If-Match", "").split(","):
            tag = tag.strip()
            if tag and not tag.startswith("W/"):
                yield tag.strip('"')

    def compare(self, current_model: Optional[pydantic.BaseModel] = None) -> bool:
        """
        Check the `If-Match` header of the request against the current state of the article

        :param current_model: schema of the article in question, None if it doesn't exist
        :return: ``True`` if the request may continue
        :raises NotModified: for a GET request that already knows the current state
        :raises PreconditionFailed: for a modifying request without the current tag
        """

        model_tag = self.make_etag(current_model)
        precondition_failed = base.PreconditionFailed(
            self.request.url.path,
            f"Conditional request not matching current model entity tag: {model_tag}"
        )

        if self.request.headers.get("If-Match", "").strip() == "*":
            if model_tag is None:
                raise precondition_failed
            return True

        if model_tag is not None and model_tag in self._listed_tags():
            if self.request.method == "GET":
                raise base.NotModified(self.request.url.path, f'"{model_tag}"')
            return True

        if self.request.method in MUTATING_METHODS:
            raise precondition_failed
        return True

    @staticmethod
    def make_etag(model: Optional[pydantic.BaseModel]) -> Optional[str]:
        """
        Return the tag of a schema, which changes with any of its values and with every server start
        """

        if model is None:
            return None
        dump = json.dumps(jsonable_encoder(model), allow_nan=False, sort_keys=True)
        content = type(model).__name__ + dump + base.runtime_key
        return str(uuid.UUID(hashlib.md5(content.encode("UTF-8")).hexdigest()))
