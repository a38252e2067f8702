"""Quote of the day.

The pick depends only on the date, so the quote stays the same all day.
planner/quotes.yaml may replace the built-in list:

    quotes:
      - text: "..."
        author: "..."
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from core.errors import PersistenceFailure
from core.fileio import read_yaml
from core.workspace import quotes_path

logger = logging.getLogger(__name__)


@dataclass
class Quote:
    text: str
    author: str

    def formatted(self) -> str:
        """„Text“ – Author"""
        return f"„{self.text}“ – {self.author}"


FALLBACK_QUOTE = Quote("Einfachheit ist die höchste Stufe der Vollendung.", "Leonardo da Vinci")

DEFAULT_QUOTES = [
    FALLBACK_QUOTE,
    Quote("Der Weg ist das Ziel.", "Konfuzius"),
    Quote("In der Ruhe liegt die Kraft.", "Sprichwort"),
    Quote("Wer immer tut, was er schon kann, bleibt immer das, was er schon ist.", "Henry Ford"),
    Quote("Das Geheimnis des Vorankommens besteht darin, den ersten Schritt zu tun.", "Mark Twain"),
    Quote("Weniger, aber besser.", "Dieter Rams"),
    Quote("Man muss das Unmögliche versuchen, um das Mögliche zu erreichen.", "Hermann Hesse"),
    Quote("Es ist nicht wenig Zeit, die wir haben, sondern viel Zeit, die wir nicht nutzen.", "Seneca"),
]


def load_quotes(root: Path | None = None) -> list[Quote]:
    """Quotes from planner/quotes.yaml, or the built-in list."""
    try:
        data = read_yaml(quotes_path(root))
    except PersistenceFailure as e:
        logger.warning("Using built-in quotes: %s", e)
        return list(DEFAULT_QUOTES)
    entries = data.get("quotes") or []
    quotes = [
        Quote(text=str(q["text"]), author=str(q.get("author", "")))
        for q in entries
        if isinstance(q, dict) and q.get("text")
    ]
    return quotes or list(DEFAULT_QUOTES)


def quote_of_the_day(day: datetime, quotes: list[Quote] | None = None) -> Quote:
    quotes = quotes if quotes is not None else DEFAULT_QUOTES
    if not quotes:
        return FALLBACK_QUOTE
    seed = day.timetuple().tm_yday + day.year * 366
    return quotes[seed % len(quotes)]
