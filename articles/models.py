"""
articles/models.py -- Domain dataclass for articles.

Pure data container with zero logic. author and date are always assigned by
the server (see api/operations.py); client input never sets them.
"""

from dataclasses import dataclass
from typing import Optional

# Stored article dates use day-month-year, e.g. "07-03-2024".
ARTICLE_DATE_FORMAT = "%d-%m-%Y"


@dataclass
class Article:
    """A published article.

    author -- username from the AuthenticatedIdentity that created it.
    date   -- creation day formatted with ARTICLE_DATE_FORMAT.

    id is None before the record is written to the database.
    """

    title: str
    description: str
    author: str
    date: str
    id: Optional[int] = None
