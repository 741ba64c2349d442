"""
Inkwell database unit tests
"""

import datetime
import unittest as _unittest

import argon2.exceptions
import sqlalchemy
import sqlalchemy.exc

from inkwell_core.api import auth
from inkwell_core.persistence import database, models

from . import utils


class DatabaseUsabilityTests(utils.BasePersistenceTests):
    """
    Database test cases checking the correct usability of the models
    """

    def test_create_article_without_orm(self):
        self.session.execute(
            sqlalchemy.insert(models.Article).values(
                slug="foo",
                title="Foo",
                body="Bar"
            )
        )
        self.session.commit()

        self.assertEqual(1, len(self.session.query(models.Article).all()))
        article = self.session.get(models.Article, 1)
        self.assertEqual("foo", article.slug)
        self.assertEqual(0, article.words)
        self.assertTrue(article.published)
        self.assertEqual([], article.tags)
        now = int(datetime.datetime.now(datetime.timezone.utc).timestamp())
        self.assertLessEqual(abs(now - article.schema.created), 5)

    def test_create_articles(self):
        article1, article2, article3 = self.get_sample_articles()
        self.session.add_all([article1, article2])
        self.session.commit()
        self.session.add(article3)
        self.session.commit()

        self.assertEqual(3, len(self.session.query(models.Article).all()))
        self.assertEqual(self.session.get(models.Article, 1), article1)
        self.assertEqual(self.session.get(models.Article, 3), article3)
        self.assertIsNone(self.session.get(models.Article, 4))
        self.assertEqual([article3], self.session.query(models.Article).filter_by(published=False).all())

        # Check the unique constraint on the article's slug
        self.session.add(models.Article(slug="orm-models", title="Copy", body="Copy"))
        with self.assertRaises(sqlalchemy.exc.IntegrityError):
            self.session.commit()
        self.session.rollback()

    def test_word_count_and_schema(self):
        article = self.get_sample_articles()[1]
        self.assertEqual(7, article.count_words())
        self.session.add(article)
        self.session.commit()

        schema = article.to_schema(words_per_minute=3)
        self.assertEqual(3, schema.reading_time)
        self.assertEqual(1, article.schema.reading_time)
        self.assertEqual("orm-models", schema.slug)
        self.assertIsNone(schema.description)
        self.assertEqual([], schema.tags)
        self.assertGreaterEqual(schema.modified, schema.created)

        code_only = models.Article(slug="code-only", title="Code only", body="```python\nprint('hi')\n```\n")
        self.assertEqual(0, code_only.count_words())
        self.session.add(code_only)
        self.session.commit()
        self.assertEqual(1, code_only.schema.reading_time)
        self.assertEqual(1, code_only.to_schema(words_per_minute=1000).reading_time)

        article.words = -1
        with self.assertRaises(sqlalchemy.exc.IntegrityError):
            self.session.commit()
        self.session.rollback()

    def test_tags_of_articles(self):
        article1, article2, _ = self.get_sample_articles()
        python, rest, sql = models.Tag(name="python"), models.Tag(name="rest"), models.Tag(name="sql")
        article1.tags = [rest, python]
        article2.tags = [sql, python]
        self.session.add_all([article1, article2])
        self.session.commit()

        self.session.expire_all()
        self.assertEqual(["python", "rest"], [t.name for t in self.session.get(models.Article, 1).tags])
        self.assertEqual(2, python.schema.articles)
        self.assertEqual(1, rest.schema.articles)

        self.session.add(models.Tag(name="python"))
        with self.assertRaises(sqlalchemy.exc.IntegrityError):
            self.session.commit()
        self.session.rollback()

        # Deleting an article drops its associations but keeps the tags
        self.session.delete(self.session.get(models.Article, 1))
        self.session.commit()
        self.assertEqual(3, len(self.session.query(models.Tag).all()))
        self.assertEqual([], self.session.get(models.Tag, rest.id).articles)
        self.assertEqual(2, len(self.session.execute(sqlalchemy.select(models.article_tags)).all()))

    def test_applications(self):
        auth.configure(True)
        app1 = models.Application(name="app1", hashed_password=auth.hash_password("password1"))
        app2 = models.Application(name="app2", hashed_password=auth.hash_password("password2"))
        self.session.add_all([app1, app2])
        self.session.commit()

        self.assertEqual("app1", app1.schema.name)
        self.assertEqual(app1, auth.check_app_credentials("app1", "password1", self.session))
        with self.assertRaises(ValueError):
            auth.check_app_credentials("app3", "password1", self.session)
        with self.assertRaises(argon2.exceptions.VerificationError):
            auth.check_app_credentials("app2", "password1", self.session)

        self.session.add(models.Application(name="app1", hashed_password="-"))
        with self.assertRaises(sqlalchemy.exc.IntegrityError):
            self.session.commit()
        self.session.rollback()


class DatabaseMigrationTests(utils.BaseTest):
    """
    Database test cases checking the shipped migrations against the models
    """

    def test_upgrade_to_head(self):
        database.upgrade(self.database_url)
        engine = sqlalchemy.create_engine(self.database_url)
        try:
            inspector = sqlalchemy.inspect(engine)
            self.assertTrue({"alembic_version", "applications", "articles", "tags", "article_tags"}.issubset(
                set(inspector.get_table_names())
            ))
            for table in models.Base.metadata.sorted_tables:
                self.assertSetEqual(
                    {column.name for column in table.columns},
                    {column["name"] for column in inspector.get_columns(table.name)},
                    table.name
                )
        finally:
            engine.dispose()

        database.PRINT_SQLITE_WARNING = False
        database.init(self.database_url, echo=False, create_all=False)
        with database.get_new_session() as session:
            session.add(models.Article(slug="foo", title="Foo", body="Bar", words=1))
            session.commit()
            self.assertEqual(1, len(session.query(models.Article).all()))


if __name__ == '__main__':
    _unittest.main()
