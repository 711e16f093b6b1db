"""
articles/store.py -- SQLAlchemy Core persistence layer for articles.

Pattern: Repository + Data Mapper (same as auth/store.py). ArticleStore is
the repository; _row_to_article is the mapper.

Titles are not unique. find_by_title returns every match; delete_by_title
removes a single matching article, the oldest first.

Security: all queries use bound parameters. No f-strings in SQL.
"""

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, select
from sqlalchemy.engine import Engine

from articles.models import Article
from core.db import make_engine, storage_errors

_DEFAULT_DB_URL = "sqlite:///./pressroom.db"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_articles = Table(
    "articles",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", String(255), nullable=False, index=True),
    Column("description", Text, nullable=False),
    Column("author", String(255), nullable=False),
    Column("date", String(10), nullable=False),  # DD-MM-YYYY
)


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class ArticleStore:
    """Repository for Article records.

    Usage:
        store = ArticleStore("sqlite:///./pressroom.db")
        store.insert(Article(title="t", description="d", author="alice", date="01-02-2024"))
        store.find_by_title("t")
        store.close()
    """

    def __init__(self, db_url: str = _DEFAULT_DB_URL) -> None:
        self.engine: Engine = make_engine(db_url)
        metadata.create_all(self.engine)

    def insert(self, article: Article) -> int:
        """Insert an article and return its assigned id."""
        with storage_errors("insert_article"), self.engine.connect() as conn:
            result = conn.execute(
                _articles.insert().values(
                    title=article.title,
                    description=article.description,
                    author=article.author,
                    date=article.date,
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def list_all(self) -> list[Article]:
        """Return every article in insertion order."""
        with storage_errors("list_articles"), self.engine.connect() as conn:
            rows = conn.execute(_articles.select().order_by(_articles.c.id)).fetchall()
        return [_row_to_article(r) for r in rows]

    def find_by_title(self, title: str) -> list[Article]:
        """Return all articles whose title matches exactly (possibly empty)."""
        with storage_errors("find_articles_by_title"), self.engine.connect() as conn:
            rows = conn.execute(
                _articles.select().where(_articles.c.title == title).order_by(_articles.c.id)
            ).fetchall()
        return [_row_to_article(r) for r in rows]

    def delete_by_title(self, title: str) -> bool:
        """Delete the oldest article with this title. Returns False if none matched."""
        oldest = select(_articles.c.id).where(_articles.c.title == title).order_by(_articles.c.id).limit(1)
        with storage_errors("delete_article_by_title"), self.engine.connect() as conn:
            article_id = conn.execute(oldest).scalar()
            if article_id is None:
                return False
            result = conn.execute(_articles.delete().where(_articles.c.id == article_id))
            conn.commit()
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_article(row) -> Article:
    return Article(
        id=row.id,
        title=row.title,
        description=row.description,
        author=row.author,
        date=row.date,
    )
