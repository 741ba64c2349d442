"""
Inkwell router module for generic functionalities
"""

import time
import datetime
from typing import Optional

import pydantic
from fastapi import Depends

from ._router import router
from ..dependency import MinimalRequestData
from .. import base, versioning
from ... import schemas
from ...version import PROJECT_VERSION_INFO


@router.get("/hello", tags=["Generic"], response_model=schemas.Greeting)
@versioning.versions(minimal=1)
async def say_hello(name: Optional[pydantic.constr(strip_whitespace=True, min_length=1, max_length=255)] = None):
    """
    Return a friendly greeting, addressing the given name if present
    """

    return schemas.Greeting(message=f"Hello, {name or 'World'}!")


@router.get("/health", tags=["Generic"], response_model=dict)
@versioning.versions(minimal=1)
async def verify_running_backend(_: MinimalRequestData = Depends(MinimalRequestData)):
    """
    Return 200 OK with an empty object as body to only verify that the service and the database session work
    """

    return {}


@router.get("/status", tags=["Generic"], response_model=schemas.Status)
@versioning.versions(minimal=1)
async def get_status():
    """
    Return some information about the current status of the server
    """

    now = datetime.datetime.now().astimezone()
    return schemas.Status(
        startup=int(base.startup),
        api_version=1,
        project_version=schemas.VersionInfo(**PROJECT_VERSION_INFO._asdict()),
        timezone=time.localtime().tm_zone,
        localtime=now,
        timestamp=int(now.timestamp())
    )
