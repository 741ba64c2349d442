"""
Inkwell router module for authentication
"""

import logging

from argon2.exceptions import VerificationError
from fastapi import Depends
from fastapi.security import OAuth2PasswordRequestForm

from ._router import router
from ..base import APIException
from ..dependency import MinimalRequestData
from .. import auth, versioning
from ... import schemas


logger = logging.getLogger(__name__)


@router.post(
    "/login",
    tags=["Authentication"],
    response_model=schemas.Token,
    responses={401: {"model": schemas.APIError}}
)
@versioning.versions(minimal=1)
async def login(
        data: OAuth2PasswordRequestForm = Depends(),
        local: MinimalRequestData = Depends(MinimalRequestData)
):
    """
    Login using application name and password via the OAuth Password Flow

    Note that this endpoint is currently the only API endpoint that
    uses URL-encoded form data instead of JSON bodies, since this
    is enforced by the OAuth standard for the Password Flow.

    See RFC 6749, section 1.3.3, for more details.
    """

    logger.debug(f"Login request using username {data.username!r}...")
    try:
        auth.check_app_credentials(data.username, data.password, local.session)
    except (ValueError, VerificationError) as exc:
        raise APIException(
            status_code=401,
            detail=f"username={data.username!r}, password=?",
            message="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"}
        ) from exc

    return schemas.Token(
        access_token=auth.create_access_token(
            data.username,
            local.config.server.token_expiration_minutes
        ),
        token_type="bearer"
    )
