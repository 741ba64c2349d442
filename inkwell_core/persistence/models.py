"""
Inkwell core database models
"""

import datetime
from typing import List, Optional

from sqlalchemy import Boolean, DateTime, Integer, String, Text, CheckConstraint, Column, ForeignKey, Table
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base
from .. import schemas
from ..documents.outline import DEFAULT_WORDS_PER_MINUTE, outline, reading_time


def _timestamp(value: Optional[datetime.datetime]) -> int:
    if value is None:
        return 0
    if value.tzinfo is None:
        value = value.replace(tzinfo=datetime.timezone.utc)
    return int(value.timestamp())


article_tags = Table(
    "article_tags",
    Base.metadata,
    Column("article_id", Integer, ForeignKey("articles.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", Integer, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True)
)


class Application(Base):
    """
    Model representing a client application which is allowed to manage articles
    """

    __tablename__ = "applications"

    id: int = Column(Integer, nullable=False, primary_key=True, autoincrement=True, unique=True)
    name: str = Column(String(255), unique=True, nullable=False)
    hashed_password: str = Column(String(255), nullable=False)
    created: datetime.datetime = Column(DateTime, server_default=func.now())

    @property
    def schema(self) -> schemas.Application:
        """
        Pydantic schema representation of the database model that can be sent to clients
        """

        return schemas.Application(
            id=self.id,
            name=self.name,
            created=_timestamp(self.created)
        )

    def __repr__(self) -> str:
        return f"Application(id={self.id}, name={self.name})"


class Tag(Base):
    """
    Model representing a keyword which groups articles of the same topic
    """

    __tablename__ = "tags"

    id: int = Column(Integer, nullable=False, primary_key=True, autoincrement=True, unique=True)
    name: str = Column(String(64), unique=True, nullable=False)

    articles: List["Article"] = relationship("Article", secondary=article_tags, back_populates="tags")

    @property
    def schema(self) -> schemas.Tag:
        """
        Pydantic schema representation of the database model that can be sent to clients
        """

        return schemas.Tag(
            name=self.name,
            articles=len(self.articles)
        )

    def __repr__(self) -> str:
        return f"Tag(id={self.id}, name={self.name})"


class Article(Base):
    """
    Model representing one markdown article with its metadata
    """

    __tablename__ = "articles"

    id: int = Column(Integer, nullable=False, primary_key=True, autoincrement=True, unique=True)
    slug: str = Column(String(255), unique=True, nullable=False)
    """URL-friendly unique identifier of the article, usually derived from its title"""
    title: str = Column(String(255), nullable=False)
    description: str = Column(String(1024), nullable=True)
    author: str = Column(String(255), nullable=True)
    body: str = Column(Text, nullable=False)
    """Markdown content of the article without any front matter"""
    words: int = Column(Integer, nullable=False, default=0)
    """Number of prose words in the body, updated whenever the body changes"""
    published: bool = Column(Boolean, nullable=False, default=True)
    created: datetime.datetime = Column(DateTime, server_default=func.now())
    modified: datetime.datetime = Column(DateTime, server_default=func.now(), onupdate=func.now())

    tags: List[Tag] = relationship("Tag", secondary=article_tags, back_populates="articles", order_by=Tag.name)

    __table_args__ = (
        CheckConstraint("words >= 0"),
    )

    def count_words(self) -> int:
        """
        Update the number of prose words by inspecting the current body
        """

        self.words = outline(self.body or "").words
        return self.words

    def to_schema(self, words_per_minute: int = DEFAULT_WORDS_PER_MINUTE) -> schemas.Article:
        """
        Pydantic schema representation of the database model using the given reading speed
        """

        return schemas.Article(
            id=self.id,
            slug=self.slug,
            title=self.title,
            description=self.description,
            author=self.author,
            tags=[tag.name for tag in self.tags],
            body=self.body,
            published=self.published,
            reading_time=reading_time(self.words or 0, words_per_minute, bool((self.body or "").strip())),
            created=_timestamp(self.created),
            modified=_timestamp(self.modified)
        )

    @property
    def schema(self) -> schemas.Article:
        """
        Pydantic schema representation of the database model that can be sent to clients
        """

        return self.to_schema()

    def __repr__(self) -> str:
        return f"Article(id={self.id}, slug={self.slug}, tags={self.tags})"
