"""
Inkwell unit tests for configuration, conditional requests and API versioning
"""

import os
import json
import logging
import unittest as _unittest
from unittest import mock

import fastapi
import pydantic
from fastapi.testclient import TestClient
from starlette.requests import Request

from inkwell_core import schemas as _schemas, settings as _settings
from inkwell_core.api import base, versioning
from inkwell_core.api.etag import ETag
from inkwell_core.misc.logger import NoDebugFilter
from inkwell_core.schemas import config as _config

from . import utils


def _make_request(method: str = "GET", if_match: str = None) -> Request:
    headers = [(b"host", b"testserver")]
    if if_match is not None:
        headers.append((b"if-match", if_match.encode("UTF-8")))
    return Request({
        "type": "http",
        "method": method,
        "scheme": "http",
        "server": ("testserver", 80),
        "root_path": "",
        "path": "/v1/articles/1",
        "query_string": b"",
        "headers": headers
    })


class SettingsTests(utils.BaseTest):
    def test_defaults_without_config_file(self):
        self.assertIsNone(_settings.find_config_file())
        self.assertEqual({}, _settings.read_settings_from_file())
        with mock.patch.dict(os.environ, {}, clear=True):
            settings = _settings.Settings()
        self.assertEqual(_config.CoreConfig().model_dump(), settings.model_dump())
        self.assertEqual(250, settings.general.max_page_size)
        self.assertEqual(200, settings.general.words_per_minute)
        self.assertEqual("sqlite://", settings.database.connection)
        self.assertEqual(8000, settings.server.port)
        self.assertFalse(settings.server.allow_weak_insecure_password_hashes)

    def test_config_file_and_environment(self):
        config = _settings.get_default_core_config("sqlite:///foo.db")
        config.server.port = 9999
        config.general.words_per_minute = 100
        _settings.store_configuration(config, self.config_file)
        self.assertEqual(self.config_file, _settings.find_config_file())

        with mock.patch.dict(os.environ, {}, clear=True):
            settings = _settings.Settings()
        self.assertEqual(9999, settings.server.port)
        self.assertEqual(100, settings.general.words_per_minute)
        self.assertEqual("sqlite:///foo.db", settings.database.connection)

        with mock.patch.dict(os.environ, {"SERVER__PORT": "7777", "GENERAL__MAX_PAGE_SIZE": "5"}, clear=True):
            settings = _settings.Settings()
        self.assertEqual(7777, settings.server.port)
        self.assertEqual(5, settings.general.max_page_size)
        self.assertEqual(100, settings.general.words_per_minute)

        with mock.patch.dict(os.environ, {"SERVER__PORT": "70000"}, clear=True):
            with self.assertRaises(pydantic.ValidationError):
                _settings.Settings()

    def test_invalid_config_file(self):
        with open(self.config_file, "w") as f:
            json.dump([1, 2, 3], f)
        with self.assertRaises(ValueError):
            _settings.read_settings_from_file()

        with open(self.config_file, "w") as f:
            json.dump({"general": {"max_body_length": 10}}, f)
        with mock.patch.dict(os.environ, {}, clear=True):
            with self.assertRaises(pydantic.ValidationError):
                _settings.Settings()

    def test_database_from_environment(self):
        with mock.patch.dict(os.environ, {}, clear=True):
            self.assertIsNone(_settings.get_db_from_env())
            self.assertEqual("sqlite://", _settings.get_db_from_env("sqlite://"))
        with mock.patch.dict(os.environ, {"DATABASE_CONNECTION": "sqlite:///a.db"}, clear=True):
            self.assertEqual("sqlite:///a.db", _settings.get_db_from_env())
            self.assertEqual("sqlite:///b.db", _settings.get_db_from_env("sqlite:///b.db"))
        with mock.patch.dict(os.environ, {"DATABASE__CONNECTION": "sqlite:///c.db"}, clear=True):
            self.assertEqual("sqlite:///c.db", _settings.get_db_from_env())

    def test_default_config(self):
        config = _settings.get_default_config()
        self.assertEqual({"general", "server", "database", "logging"}, set(config.keys()))
        self.assertIn("default", config["logging"]["handlers"])
        self.assertEqual("INFO", config["logging"]["root"]["level"])
        self.assertEqual(
            "sqlite:///x.db",
            _settings.get_default_core_config("sqlite:///x.db").database.connection
        )


class ETagTests(_unittest.TestCase):
    @staticmethod
    def _article(**kwargs) -> _schemas.Article:
        data = {
            "id": 1,
            "slug": "foo",
            "title": "Foo",
            "tags": ["bar"],
            "body": "Body",
            "published": True,
            "reading_time": 1,
            "created": 1700000000,
            "modified": 1700000000
        }
        data.update(kwargs)
        return _schemas.Article(**data)

    def test_make_etag(self):
        self.assertIsNone(ETag.make_etag(None))
        article = self._article()
        tag = ETag.make_etag(article)
        self.assertEqual(tag, ETag.make_etag(self._article()))
        self.assertNotEqual(tag, ETag.make_etag(self._article(title="Bar")))
        self.assertNotEqual(tag, ETag.make_etag(self._article(id=2)))
        self.assertEqual(36, len(tag))

    def test_add_header(self):
        response = fastapi.Response()
        self.assertTrue(ETag(_make_request()).add_header(response, self._article()))
        self.assertEqual(f'"{ETag.make_etag(self._article())}"', response.headers["ETag"])
        self.assertFalse(ETag(_make_request()).add_header(fastapi.Response(), None))

    def test_compare(self):
        article = self._article()
        current = f'"{ETag.make_etag(article)}"'

        self.assertTrue(ETag(_make_request("GET")).compare(article))
        self.assertTrue(ETag(_make_request("GET", '"foo"')).compare(article))
        self.assertTrue(ETag(_make_request("GET", "*")).compare(article))
        with self.assertRaises(base.NotModified):
            ETag(_make_request("GET", current)).compare(article)
        with self.assertRaises(base.NotModified):
            ETag(_make_request("GET", f'"foo", {current}')).compare(article)

        for method in ("PUT", "PATCH", "DELETE"):
            self.assertTrue(ETag(_make_request(method, current)).compare(article))
            self.assertTrue(ETag(_make_request(method, "*")).compare(article))
            for header in (None, "", '"foo"', f"W/{current}"):
                with self.assertRaises(base.PreconditionFailed):
                    ETag(_make_request(method, header)).compare(article)
            with self.assertRaises(base.PreconditionFailed):
                ETag(_make_request(method, "*")).compare(None)

        self.assertTrue(ETag(_make_request("POST")).compare(article))


class VersioningTests(_unittest.TestCase):
    def test_version_decorator(self):
        with self.assertRaises(TypeError):
            versioning.versions("1")
        with self.assertRaises(ValueError):
            versioning.versions(1, minimal=2)
        with self.assertRaises(ValueError):
            versioning.versions(3, maximal=2)

        @versioning.versions(2, 3, minimal=2, maximal=4)
        def endpoint():
            pass

        self.assertEqual((2, 3), getattr(endpoint, versioning.VERSION_ANNOTATION_NAME))
        self.assertEqual(2, getattr(endpoint, versioning.MINIMAL_VERSION_ANNOTATION_NAME))
        self.assertEqual(4, getattr(endpoint, versioning.MAXIMAL_VERSION_ANNOTATION_NAME))
        with self.assertRaises(AssertionError):
            versioning.versions(minimal=1)(endpoint)

    def test_versioned_api(self):
        router = fastapi.APIRouter()

        @router.get("/all")
        @versioning.versions(minimal=1)
        async def everywhere():
            return {}

        @router.get("/old")
        @versioning.versions(maximal=1)
        async def only_old():
            return {}

        @router.get("/new")
        @versioning.versions(minimal=2)
        async def only_new():
            return {}

        @router.get("/explicit")
        @versioning.versions(1, 3)
        async def explicit():
            return {}

        app = versioning.VersionedFastAPI(
            apis={1: fastapi.FastAPI(), 2: fastapi.FastAPI(), 3: fastapi.FastAPI()},
            logger=logging.getLogger(__name__)
        )
        app.add_router(router)
        app.finish()
        app.finish()
        with self.assertRaises(RuntimeError):
            app.add_router(router)

        served = {
            1: {"all", "old", "explicit"},
            2: {"all", "new"},
            3: {"all", "new", "explicit"}
        }
        with TestClient(app) as client:
            for version, paths in served.items():
                for path in ("all", "old", "new", "explicit"):
                    response = client.get(f"/v{version}/{path}")
                    self.assertEqual(200 if path in paths else 404, response.status_code, (version, path))
            self.assertEqual(404, client.get("/v4/all").status_code)

            versions = client.get("/versions").json()
            self.assertEqual(3, versions["latest"])
            self.assertEqual(["/v1", "/v2", "/v3"], [v["prefix"] for v in versions["versions"]])


class LoggingTests(_unittest.TestCase):
    def test_no_debug_filter(self):
        log_filter = NoDebugFilter("multipart.multipart")

        def _record(name: str, level: int) -> logging.LogRecord:
            return logging.LogRecord(name, level, __file__, 1, "message", None, None)

        self.assertFalse(log_filter.filter(_record("multipart.multipart", logging.DEBUG)))
        self.assertTrue(log_filter.filter(_record("multipart.multipart", logging.INFO)))
        self.assertTrue(log_filter.filter(_record("inkwell_core", logging.DEBUG)))


if __name__ == '__main__':
    _unittest.main()
