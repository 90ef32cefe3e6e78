"""Localized configuration lookup.

Named values (bot name, board page, vote templates, max block period) live in
per-language YAML catalogs under ``sanctions/i18n``. Every lookup re-reads the
catalog so a configuration change is picked up on the next evaluation; nothing
is cached process-wide.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import yaml

from sanctions.config import I18N_DIR
from sanctions.exceptions import ConfigurationMissing

if TYPE_CHECKING:
    from sanctions.config import Settings

logger = logging.getLogger(__name__)

FALLBACK_LANGUAGE = "en"

BOT_NAME = "sanctions-bot-name"
DISCUSSION_PAGE_NAME = "sanctions-discussion-page-name"
AGREE_TEMPLATE = "sanctions-agree-template-title"
DISAGREE_TEMPLATE = "sanctions-disagree-template-title"
INSULTING_NAME_TITLE = "sanctions-type-insulting-name"
MAX_BLOCK_PERIOD = "sanctions-max-block-period"


def _load_catalog(language: str) -> dict[str, str]:
    path = I18N_DIR / f"{language}.yaml"
    if not path.exists():
        return {}
    with path.open(encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}
    return {str(k): str(v) for k, v in data.items() if v is not None}


def _override_for(key: str, settings: Settings) -> str:
    if key == BOT_NAME:
        return settings.sanctions_bot_name_override
    if key == DISCUSSION_PAGE_NAME:
        return settings.sanctions_discussion_page_override
    return ""


def get_message(key: str, settings: Settings) -> str:
    """Resolve *key* in the content language.

    Resolution order: settings override, content-language catalog, English
    catalog. Raises ConfigurationMissing when none yields a non-blank value.
    """
    override = _override_for(key, settings).strip()
    if override:
        return override

    for language in (settings.sanctions_content_language, FALLBACK_LANGUAGE):
        value = _load_catalog(language).get(key, "").strip()
        if value:
            return value

    raise ConfigurationMissing(key)


def lookup_message(key: str, settings: Settings) -> str | None:
    """Like get_message, but logs and returns None when the value is missing.

    Callers treat None as "feature disabled" and fail toward visibility.
    """
    try:
        return get_message(key, settings)
    except ConfigurationMissing:
        logger.error(
            "configuration_missing key=%s language=%s",
            key,
            settings.sanctions_content_language,
        )
        return None


def max_block_period(settings: Settings) -> int:
    """The upper bound, in days, for a proposed block. 0 when misconfigured."""
    raw = lookup_message(MAX_BLOCK_PERIOD, settings)
    if raw is None:
        return 0
    try:
        return max(int(raw), 0)
    except ValueError:
        logger.error("configuration_invalid key=%s value=%r", MAX_BLOCK_PERIOD, raw)
        return 0


def client_config(settings: Settings) -> dict[str, str | int | None]:
    """Values the front-end needs to render vote buttons and the creation form."""
    return {
        "agree_template": lookup_message(AGREE_TEMPLATE, settings),
        "disagree_template": lookup_message(DISAGREE_TEMPLATE, settings),
        "insulting_name_topic_title": lookup_message(INSULTING_NAME_TITLE, settings),
        "max_block_period": max_block_period(settings),
    }
