"""
Inkwell API dependency library
"""

import logging
from typing import Generator, Optional

import sqlalchemy.exc
from fastapi import Depends, Request, Response
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from . import auth, base
from ..persistence import database, models
from ..schemas import config
from ..settings import Settings


_oauth2_scheme = OAuth2PasswordBearer(tokenUrl="login", auto_error=False)


def get_session() -> Generator[Session, None, None]:
    """
    Return a generator to handle database sessions gracefully
    """

    logger = logging.getLogger(__name__)
    session = database.get_new_session()

    try:
        yield session
        session.flush()
    except sqlalchemy.exc.DBAPIError as exc:
        details = (exc.statement or "").replace("\n", "")
        logger.exception(f"{type(exc).__name__}: {exc.orig} @ {details!r}")
        session.rollback()
        raise
    except sqlalchemy.exc.SQLAlchemyError as exc:
        logger.exception(f"{type(exc).__name__}: {str(exc)}")
        session.rollback()
        raise
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_config(request: Request) -> config.CoreConfig:
    """
    Return the settings of the application handling the request (or load them on demand)
    """

    settings = getattr(request.app.state, "settings", None)
    if settings is None:
        settings = Settings()
        request.app.state.settings = settings
    return settings


class MinimalRequestData:
    """
    Collection of dependencies used by all path operations, even unauthenticated ones
    """

    def __init__(
            self,
            request: Request,
            response: Response,
            session: Session = Depends(get_session)
    ):
        self.request = request
        self.response = response
        self.headers = request.headers
        self.session = session
        self._config: Optional[config.CoreConfig] = None

    @property
    def config(self) -> config.CoreConfig:
        if self._config is None:
            self._config = get_config(self.request)
        return self._config


def check_auth_token(token: Optional[str] = Depends(_oauth2_scheme)) -> str:
    if not token:
        raise base.Unauthorized("Missing bearer token", "No 'Authorization' header found")
    return auth.decode_access_token(token)


class LocalRequestData(MinimalRequestData):
    """
    Collection of dependencies used by path operations which change the state of resources

    Any dependency added here will be added to the OpenAPI definition, if it
    refers to a Query, Header, Path or Cookie. The bearer token must belong
    to a currently registered application, otherwise the request is rejected.
    """

    def __init__(
            self,
            request: Request,
            response: Response,
            session: Session = Depends(get_session),
            application_name: str = Depends(check_auth_token)
    ):
        super().__init__(request, response, session)
        origin = session.query(models.Application).filter_by(name=application_name).one_or_none()
        if origin is None:
            raise base.Unauthorized("Token owner couldn't be determined", f"application={application_name!r}")
        self.origin_app: models.Application = origin
