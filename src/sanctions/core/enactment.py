"""Pass policies and enactment triggers.

Both are chosen by configuration. The core only decides *whether* an expired
sanction passed; the enactment subsystem performs the block or rename and
must itself tolerate being invoked twice for the same sanction.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Protocol

import httpx

from sanctions.exceptions import EnactmentUndelivered
from sanctions.models.sanction import Sanction, Tally

if TYPE_CHECKING:
    from sanctions.config import Settings
    from sanctions.core.event_bus import EventBus

logger = logging.getLogger(__name__)


# --- Pass policies ---

PassPolicy = Callable[[Tally], bool]


def supermajority_policy(min_votes: int) -> PassPolicy:
    """At least *min_votes* votes, and at least two thirds of them agree."""

    def _passed(tally: Tally) -> bool:
        return tally.total >= min_votes and tally.agree * 3 >= tally.total * 2

    return _passed


def majority_policy(min_votes: int) -> PassPolicy:
    """At least *min_votes* votes, and strictly more agree than disagree. Ties fail."""

    def _passed(tally: Tally) -> bool:
        return tally.total >= min_votes and tally.agree > tally.disagree

    return _passed


PASS_POLICIES: dict[str, Callable[[int], PassPolicy]] = {
    "supermajority": supermajority_policy,
    "majority": majority_policy,
}


def get_pass_policy(settings: Settings) -> PassPolicy:
    factory = PASS_POLICIES[settings.sanctions_pass_policy]
    return factory(settings.sanctions_min_votes)


# --- Enactment triggers ---


class EnactmentTrigger(Protocol):
    """Carries out a passed sanction. Called at most once per view."""

    async def enact(self, sanction: Sanction) -> None: ...


def enactment_payload(sanction: Sanction) -> dict:
    return {
        "sanction_id": sanction.id,
        "identifier": sanction.identifier,
        "subject": sanction.subject,
        "sanction_type": sanction.sanction_type,
        "block_days": sanction.tally.block_days,
        "agree": sanction.tally.agree,
        "disagree": sanction.tally.disagree,
    }


class EventBusEnactment:
    """Publishes ``sanction.enacted`` for in-process or SSE subscribers.

    With nobody listening the sanction is left pending for a later retry.
    """

    def __init__(self, bus: EventBus) -> None:
        self.bus = bus

    async def enact(self, sanction: Sanction) -> None:
        delivered = await self.bus.publish("sanction.enacted", enactment_payload(sanction))
        if delivered == 0:
            raise EnactmentUndelivered(f"no subscriber for sanction {sanction.id}")


class WebhookEnactment:
    """POSTs the enactment request to an external endpoint."""

    def __init__(self, url: str, timeout: float = 10.0) -> None:
        self.url = url
        self.timeout = timeout

    async def enact(self, sanction: Sanction) -> None:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await client.post(self.url, json=enactment_payload(sanction))
            resp.raise_for_status()


def build_enactment_trigger(settings: Settings, bus: EventBus) -> EnactmentTrigger:
    if settings.sanctions_enactment_webhook_url:
        return WebhookEnactment(settings.sanctions_enactment_webhook_url)
    return EventBusEnactment(bus)
