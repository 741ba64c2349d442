"""
Inkwell core unit tests
"""

import unittest
from .test_api import APITests
from .test_cli import StandaloneCLITests
from .test_documents import FrontMatterTests, OutlineTests, SlugTests
from .test_misc import ETagTests, LoggingTests, SettingsTests, VersioningTests
from .test_persistence import DatabaseMigrationTests, DatabaseUsabilityTests


TEST_CLASSES = [
    APITests,
    DatabaseMigrationTests,
    DatabaseUsabilityTests,
    ETagTests,
    FrontMatterTests,
    LoggingTests,
    OutlineTests,
    SettingsTests,
    SlugTests,
    StandaloneCLITests,
    VersioningTests,
]


def get_suite() -> unittest.TestSuite:
    suite = unittest.TestSuite()
    for cls in TEST_CLASSES:
        for fixture in filter(lambda f: f.startswith("test_"), dir(cls)):
            suite.addTest(cls(fixture))
    return suite
