"""
Inkwell extra schemas

This module contains the special schemas for versions, greetings and the status.
"""

import datetime
from typing import List

import pydantic


__all__ = ["Greeting", "Status", "VersionInfo", "Versions"]


class Greeting(pydantic.BaseModel):
    message: str


class Versions(pydantic.BaseModel):
    class Version(pydantic.BaseModel):
        version: pydantic.PositiveInt
        prefix: pydantic.constr(min_length=2)

    latest: pydantic.PositiveInt
    versions: List[Version]


class VersionInfo(pydantic.BaseModel):
    major: pydantic.NonNegativeInt
    minor: pydantic.NonNegativeInt
    micro: pydantic.NonNegativeInt


class Status(pydantic.BaseModel):
    startup: pydantic.NonNegativeInt
    api_version: pydantic.PositiveInt
    project_version: VersionInfo
    timezone: str
    localtime: datetime.datetime
    timestamp: pydantic.NonNegativeInt
