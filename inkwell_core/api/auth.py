"""
Authentication helper library for the core REST API
"""

import datetime
import logging
from typing import Optional

from argon2 import PasswordHasher, profiles
from jose import jwt
from sqlalchemy.orm import Session

from . import base
from .. import schemas
from ..persistence import database, models


logger = logging.getLogger(__name__)

_password_check: Optional[PasswordHasher] = None


def configure(allow_weak_insecure_password_hashes: bool = False):
    """
    Select the argon2 parameters used to hash and verify application passwords
    """

    global _password_check
    if allow_weak_insecure_password_hashes:
        logger.warning("Using weak and insecure password hashes. Never do this in production!")
        _password_check = PasswordHasher.from_parameters(profiles.CHEAPEST)
    else:
        _password_check = PasswordHasher.from_parameters(profiles.RFC_9106_LOW_MEMORY)


def _get_password_check() -> PasswordHasher:
    if _password_check is None:
        configure()
    return _password_check


def hash_password(password: str) -> str:
    return _get_password_check().hash(password)


def check_app_credentials(application: str, password: str, session: Session) -> models.Application:
    """
    Check the correctness of a password for a given application, raise some error otherwise

    :raises ValueError: when the application is unknown
    :raises argon2.exceptions.VerificationError: when the password doesn't match
    """

    checker = _get_password_check()
    app = session.query(models.Application).filter_by(name=application).one_or_none()
    if app is None:
        raise ValueError(f"Unknown app {application!r}!")
    checker.verify(app.hashed_password, password)
    if checker.check_needs_rehash(app.hashed_password):
        app.hashed_password = checker.hash(password)
        session.add(app)
        session.commit()
    return app


def create_application(name: str, password: str, session: Optional[Session] = None) -> schemas.Application:
    """
    Store a new application with the hashed password and return its schema
    """

    app = models.Application(name=name, hashed_password=hash_password(password))
    if session is not None:
        session.add(app)
        session.commit()
        return app.schema
    with database.get_new_session() as session:
        session.add(app)
        session.commit()
        return app.schema


def create_access_token(username: str, expiration_minutes: int = 120) -> str:
    now = datetime.datetime.now(datetime.timezone.utc)
    return jwt.encode(
        {
            "exp": now + datetime.timedelta(minutes=expiration_minutes),
            "iat": now,
            "sub": username
        },
        base.runtime_key,
        algorithm=jwt.ALGORITHMS.HS256
    )


def decode_access_token(token: str) -> str:
    """
    Verify a bearer token and return the name of the application it was issued for

    :raises Unauthorized: when the token is invalid, expired or lacks a subject
    """

    try:
        payload = jwt.decode(
            token,
            base.runtime_key,
            algorithms=[jwt.ALGORITHMS.HS256],
            options={"require_exp": True, "require_iat": True}
        )
    except jwt.JWTError as exc:
        raise base.Unauthorized("Failed to validate token successfully", f"{type(exc).__name__}: {exc}") from exc
    username = payload.get("sub", None)
    if not username:
        raise base.Unauthorized("Failed to validate token successfully", "Missing subject in token")
    return username
