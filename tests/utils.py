"""
Base classes and subprocess helpers shared by the Inkwell test modules
"""

import os
import sys
import random
import secrets
import tempfile
import unittest
import subprocess
from typing import Iterable, List, Mapping, Optional, Tuple, Type, Union

import pydantic
import requests
import sqlalchemy.orm
from sqlalchemy.engine import Engine as _Engine

from inkwell_core import schemas as _schemas, settings as _settings
from inkwell_core.api import auth
from inkwell_core.persistence import database, models

from . import conf


def _subprocess_output():
    return None if conf.SHOW_SUBPROCESS_OUTPUT else subprocess.DEVNULL


def wait_for_server(process: subprocess.Popen, server: str) -> bool:
    """
    Wait until the server answers on its `/versions` endpoint, returning False if it exits or never answers
    """

    for _ in range(conf.MAX_SERVER_WAIT_RETRIES):
        try:
            process.wait(conf.API_SUBPROCESS_START_WAIT_TIMEOUT)
            return False
        except subprocess.TimeoutExpired:
            pass
        try:
            requests.get(server + "versions")
            return True
        except requests.exceptions.ConnectionError:
            pass
    return False


def quit_process(process: subprocess.Popen):
    process.terminate()
    try:
        process.wait(conf.API_SUBPROCESS_TERMINATE_TIMEOUT)
    except subprocess.TimeoutExpired:
        process.kill()
        try:
            process.wait(conf.API_SUBPROCESS_KILL_TIMEOUT)
        except subprocess.TimeoutExpired:
            pass


def make_test_config(database_url: str) -> _schemas.config.CoreConfig:
    """
    Return a default config using the given database, weak password hashes and no log files
    """

    config = _settings.get_default_core_config(database_url)
    config.database.debug_sql = conf.SQLALCHEMY_ECHOING
    config.server.allow_weak_insecure_password_hashes = True
    if conf.SERVER_LOGGING_OVERWRITE:
        config.logging = _schemas.config.LoggingConfig(**conf.SERVER_LOGGING_OVERWRITE)
    else:
        config.logging.handlers.pop("file", None)
        config.logging.root["handlers"] = ["default"]
    return config


class BaseTest(unittest.TestCase):
    """
    Base class giving every test its own config file path and database URL

    Subclasses overriding `setUp` or `tearDown` have to call the base
    implementations first respectively last. Nothing is written to the
    config file until `write_config` is called.
    """

    config_file: Optional[str] = None
    database_url: Optional[str] = None
    _database_file: Optional[str] = None

    def setUp(self) -> None:
        self.config_file = os.path.join(
            tempfile.gettempdir(),
            f"inkwell_config_{os.getpid()}_{secrets.token_hex(8)}.json"
        )
        _settings.CONFIG_PATHS = [self.config_file]

        if conf.DATABASE_URL is not None:
            self.database_url = conf.DATABASE_URL
            return

        self._database_file = conf.DATABASE_DEFAULT_FILE_FORMAT.format(os.getpid(), secrets.token_hex(4))
        try:
            open(self._database_file, "wb").close()
            os.remove(self._database_file)
            self.database_url = conf.DATABASE_URL_FORMAT.format(self._database_file)
        except OSError as exc:
            self.database_url = conf.DATABASE_FALLBACK_URL
            self._database_file = None
            print(f"{exc}: Using an in-memory database, articles won't be shared with subprocesses!", file=sys.stderr)

    def tearDown(self) -> None:
        for path in (self._database_file, self.config_file):
            if path and os.path.exists(path):
                os.remove(path)

    def write_config(self) -> _schemas.config.CoreConfig:
        config = make_test_config(self.database_url)
        _settings.store_configuration(config, self.config_file)
        return config


class BasePersistenceTests(BaseTest):
    engine: _Engine
    session: sqlalchemy.orm.Session

    def setUp(self) -> None:
        super().setUp()
        opts = {"echo": conf.SQLALCHEMY_ECHOING}
        if self.database_url.startswith("sqlite:"):
            opts["connect_args"] = {"check_same_thread": False}
        self.engine = sqlalchemy.create_engine(self.database_url, **opts)
        self.session = sqlalchemy.orm.sessionmaker(
            autoflush=False,
            bind=self.engine
        )()
        models.Base.metadata.create_all(bind=self.engine)
        self.write_config()

    def tearDown(self) -> None:
        self.session.close()
        self.engine.dispose()
        super().tearDown()

    @staticmethod
    def get_sample_articles() -> List[models.Article]:
        return [
            models.Article(
                slug="building-a-rest-api",
                title="Building a REST API",
                description="Routes, JSON responses and validation",
                author="Jane Doe",
                body="# Building a REST API\n\nStart with a tiny server.\n"
            ),
            models.Article(
                slug="orm-models",
                title="ORM models",
                body="Declare a model class for every table.\n\n```python\nclass Post: ...\n```\n"
            ),
            models.Article(
                slug="draft",
                title="Draft",
                body="Nothing to see here yet.",
                published=False
            )
        ]


class BaseAPITests(BaseTest):
    """
    Base class for tests talking to a freshly started API server subprocess

    Every test gets its own server, config file, database and registered
    application, whose credentials are stored in `auth` for `login`.
    """

    server_port: Optional[int] = None
    server_process: Optional[subprocess.Popen] = None

    auth: Optional[Tuple[str, str]] = None
    token: Optional[str] = None
    _api_version: Optional[int] = None

    @property
    def server(self) -> str:
        return f"http://127.0.0.1:{self.server_port}/"

    @property
    def api_prefix(self) -> str:
        if self._api_version is None:
            self._api_version = int(requests.get(self.server + "versions").json()["latest"])
        return f"v{self._api_version}/"

    def assertQuery(
            self,
            endpoint: Tuple[str, str],
            status_code: Union[int, Iterable[int]] = 200,
            json: Optional[Union[dict, list]] = None,
            headers: Optional[dict] = None,
            r_none: bool = False,
            r_is_json: bool = True,
            r_headers: Optional[Union[Mapping, Iterable]] = None,
            r_schema: Optional[Type[pydantic.BaseModel]] = None,
            no_version: bool = False,
            **kwargs
    ) -> requests.Response:
        """
        Send a request to the API server and check the status code of its response

        :param endpoint: tuple of the HTTP method and the path below the latest API version
        :param status_code: expected status code of the response
        :param json: optional request body
        :param headers: optional request headers (the bearer token is added after `login`)
        :param r_none: expect an empty response body and skip the other content checks
        :param r_is_json: expect a JSON response body
        :param r_headers: headers expected in the response; a mapping also checks their values
        :param r_schema: schema class the JSON response body must validate against
        :param no_version: use the path as it is, without the API version prefix
        :param kwargs: further keyword arguments for ``requests.request``
        """

        method, path = endpoint
        url = self.server + ("" if no_version else self.api_prefix) + path.lstrip("/")
        headers = dict(headers or {})
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        response = requests.request(method.upper(), url, json=json, headers=headers, **kwargs)
        if isinstance(status_code, int):
            self.assertEqual(status_code, response.status_code, response.text)
        else:
            self.assertIn(response.status_code, status_code, response.text)

        if r_headers is not None:
            for k in r_headers:
                self.assertIsNotNone(response.headers.get(k), response.headers)
                if isinstance(r_headers, Mapping):
                    self.assertEqual(r_headers[k], response.headers.get(k), response.headers)

        if r_none:
            self.assertEqual("", response.text)
        elif r_is_json:
            try:
                content = response.json()
            except ValueError:
                self.fail(("No JSON content detected", response.headers, response.text))
            if r_schema is not None:
                r_schema.model_validate(content)

        return response

    def login(self):
        response = requests.post(
            self.server + self.api_prefix + "login",
            data={"grant_type": "password", "username": self.auth[0], "password": self.auth[1]}
        )
        if not response.ok:
            self.fail(f"Failed to login ({response.status_code})")
        self.token = response.json()["access_token"]

    def get_db_session(self) -> sqlalchemy.orm.Session:
        return database.get_new_session()

    def get_etag(self, path: str) -> str:
        return self.assertQuery(("GET", path), r_headers=["ETag"]).headers["ETag"]

    def _start_api_server(self):
        config = self.write_config()
        self.auth = ("application", secrets.token_urlsafe(16))
        database.PRINT_SQLITE_WARNING = False
        database.init(config.database.connection, config.database.debug_sql)
        auth.configure(True)
        auth.create_application(*self.auth)

        self.server_port = random.randint(10000, 20000)
        for _ in range(conf.MAX_SERVER_START_RETRIES):
            self.server_process = subprocess.Popen(
                [
                    sys.executable, "-m", "inkwell_core", "run", "--host", "127.0.0.1",
                    "--port", str(self.server_port), "--config", self.config_file, "--no-access-log"
                ],
                stderr=_subprocess_output(),
                stdout=_subprocess_output(),
                start_new_session=True
            )
            if wait_for_server(self.server_process, self.server):
                return
            quit_process(self.server_process)
            self.server_process = None
            self.server_port += 1

        self.fail(
            f"Failed to start the API server after {conf.MAX_SERVER_START_RETRIES} tries. "
            f"Set 'SHOW_SUBPROCESS_OUTPUT' in the test config to see the server's output."
        )

    def setUp(self) -> None:
        super().setUp()
        self.token = None
        self._api_version = None
        self._start_api_server()

    def tearDown(self) -> None:
        if self.server_process is not None:
            quit_process(self.server_process)
            self.server_process = None
        super().tearDown()

    @classmethod
    def setUpClass(cls) -> None:
        super().setUpClass()
        p = subprocess.run(
            [sys.executable, "-m", "inkwell_core", "run", "-h"],
            stderr=subprocess.PIPE,
            stdout=subprocess.PIPE,
            start_new_session=True
        )
        if p.returncode != 0:
            raise RuntimeError("Executing the 'inkwell_core' module from the current Python interpreter failed!")
