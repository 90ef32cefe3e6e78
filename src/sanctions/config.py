"""Application settings via pydantic-settings. Loads from environment and .env file."""

from __future__ import annotations

import pathlib
import secrets
from typing import Literal

from pydantic import model_validator
from pydantic_settings import BaseSettings

PACKAGE_ROOT = pathlib.Path(__file__).resolve().parent

# Message catalogs shipped with the package, one YAML file per language.
I18N_DIR = PACKAGE_ROOT / "i18n"


class Settings(BaseSettings):
    """Sanctions service configuration.

    All values can be overridden via environment variables or .env file.
    The ``sanctions_*_override`` fields win over the localized message
    catalog; leave them empty to use the catalog for the content language.
    """

    # Database
    database_url: str = "sqlite+aiosqlite:///sanctions.db"

    # Environment
    sanctions_env: str = "development"
    session_secret_key: str = ""

    # Localization
    sanctions_content_language: str = "en"
    sanctions_bot_name_override: str = ""
    sanctions_discussion_page_override: str = ""

    # Discussion platform
    sanctions_platform_api_url: str = "http://localhost:8080/api/flow"
    sanctions_topic_namespace: str = "Topic"
    sanctions_listing_path: str = "/sanctions"

    # Voting
    sanctions_voting_period_days: int = 5
    sanctions_vote_min_edits: int = 3
    sanctions_vote_min_account_age_days: int = 20

    # Pass policy
    sanctions_pass_policy: Literal["supermajority", "majority"] = "supermajority"
    sanctions_min_votes: int = 3

    # Enactment: webhook when set, otherwise published on the event bus
    sanctions_enactment_webhook_url: str = ""

    # Watch-list bookkeeping for suppressed email notifications
    enotif_watchlist: bool = True
    show_updated_marker: bool = True

    # Optional expiry sweep (empty = lazy expiry on page views only)
    sanctions_sweep_cron: str = ""

    # Logging
    sanctions_log_level: str = "INFO"

    model_config = {"env_prefix": "", "env_file": ".env", "extra": "ignore"}

    @model_validator(mode="after")
    def _ensure_session_secret(self) -> Settings:
        """Auto-generate session secret in dev; reject missing secret in production."""
        if not self.session_secret_key:
            if self.sanctions_env == "production":
                msg = (
                    "SESSION_SECRET_KEY must be set in production. "
                    "It must match the secret the wiki front-end signs sessions with."
                )
                raise ValueError(msg)
            self.session_secret_key = secrets.token_urlsafe(32)
        return self

    @model_validator(mode="after")
    def _check_voting_period(self) -> Settings:
        if self.sanctions_voting_period_days < 1:
            raise ValueError("SANCTIONS_VOTING_PERIOD_DAYS must be at least 1")
        return self
