"""Error taxonomy for the sanction lifecycle.

Only ``SanctionMisuseError`` is meant to propagate; the others are recovered
close to where they are raised and turn into "not sanction-related".
"""

from __future__ import annotations


class SanctionsError(Exception):
    """Base class for sanction lifecycle errors."""


class InvalidIdentifier(SanctionsError, ValueError):
    """A topic token does not match the canonical identifier format."""


class UnresolvedSanction(SanctionsError, LookupError):
    """A well-formed identifier names no sanction."""


class SanctionMisuseError(SanctionsError, RuntimeError):
    """A lifecycle operation was called in a state that forbids it.

    Refreshing the tally of an expired sanction is a defect in the caller.
    """


class ConfigurationMissing(SanctionsError, KeyError):
    """A required localized configuration value is absent or empty."""

    def __init__(self, key: str) -> None:
        super().__init__(key)
        self.key = key

    def __str__(self) -> str:
        return f"missing configuration value: {self.key}"


class EnactmentUndelivered(SanctionsError):
    """No enactment worker accepted a passed sanction; it stays pending."""
