"""Topic identifiers and page classification.

A discussion topic is named by an 88-bit UUID that the platform writes either
as lowercase base-36 (at most 19 characters) or as 22 hexadecimal characters.
Both spellings of the same value compare equal.

``classify`` is the single place that decides whether a page is the sanctions
board, a topic that may hold a sanction, or something unrelated.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from sanctions.exceptions import InvalidIdentifier

UUID_BITS = 88
ALNUM_MAX_LEN = 19
HEX_LEN = 22

_ALNUM_RE = re.compile(r"[0-9a-z]{1,19}")
_HEX_RE = re.compile(r"[0-9a-f]{22}")
_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits: list[str] = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


@dataclass(frozen=True)
class Identifier:
    """A validated topic UUID. Equality is by numeric value."""

    value: int

    @classmethod
    def from_text(cls, raw: str) -> Identifier:
        """Strict parse. Raises InvalidIdentifier on anything non-canonical."""
        text = raw.lower()
        if len(text) == HEX_LEN and _HEX_RE.fullmatch(text):
            value = int(text, 16)
        elif len(text) <= ALNUM_MAX_LEN and _ALNUM_RE.fullmatch(text):
            value = int(text, 36)
        else:
            raise InvalidIdentifier(f"not a topic identifier: {raw!r}")
        if value >= 1 << UUID_BITS:
            raise InvalidIdentifier(f"topic identifier out of range: {raw!r}")
        return cls(value)

    @property
    def alnum(self) -> str:
        """Canonical text form (unpadded lowercase base-36)."""
        return _to_base36(self.value)

    @property
    def hex(self) -> str:
        return format(self.value, f"0{HEX_LEN}x")

    def __str__(self) -> str:
        return self.alnum


def parse_identifier(raw: str | None) -> Identifier | None:
    """Soft parse: None for anything that is not a topic identifier."""
    if not raw:
        return None
    try:
        return Identifier.from_text(raw.lower())
    except InvalidIdentifier:
        return None


# --- Titles ---


def normalize_title(title: str) -> str:
    """Normalize a wiki title the way the wiki compares titles.

    Underscores become spaces, runs of whitespace collapse, and the first
    letter of the namespace and of the page name are upper-cased.
    """
    text = re.sub(r"\s+", " ", title.replace("_", " ")).strip()
    if not text:
        return ""
    namespace, sep, page = text.partition(":")
    if sep and namespace and page:
        namespace = namespace.strip()
        page = page.strip()
        return f"{namespace[:1].upper()}{namespace[1:]}:{page[:1].upper()}{page[1:]}"
    return text[:1].upper() + text[1:]


def _strip_namespace(title: str, namespace: str) -> str:
    prefix = f"{namespace}:"
    if namespace and title.lower().startswith(prefix.lower()):
        return title[len(prefix):]
    return title


# --- Classification ---


@dataclass(frozen=True)
class BoardPage:
    """The discussion board that hosts every sanction topic."""

    title: str


@dataclass(frozen=True)
class TopicPage:
    """A discussion topic whose title parses as an identifier."""

    title: str
    identifier: Identifier


@dataclass(frozen=True)
class OtherPage:
    title: str


PageKind = BoardPage | TopicPage | OtherPage


def classify(
    title: str | None,
    board_page_name: str | None,
    topic_namespace: str = "Topic",
) -> PageKind:
    """Tag a page as the board, a candidate sanction topic, or unrelated.

    A missing board page name disables board detection rather than matching
    everything.
    """
    if not title:
        return OtherPage(title="")

    normalized = normalize_title(title)
    if board_page_name and normalized == normalize_title(board_page_name):
        return BoardPage(title=normalized)

    identifier = parse_identifier(_strip_namespace(title.strip(), topic_namespace))
    if identifier is not None:
        return TopicPage(title=normalized, identifier=identifier)

    return OtherPage(title=normalized)
