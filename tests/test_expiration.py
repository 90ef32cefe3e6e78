"""Tests for the expiration evaluator."""

from datetime import timedelta

import pytest
from conftest import NOW

from sanctions.core.expiration import (
    compute_deadline,
    is_expired,
    needs_expiry_transition,
    time_remaining,
)
from sanctions.models.sanction import Sanction


def _sanction(deadline, expired=False) -> Sanction:
    return Sanction(
        id="s-1",
        identifier="abc",
        subject="Mallory",
        sanction_type="block",
        created_at=deadline - timedelta(days=5),
        deadline=deadline,
        expired=expired,
    )


class TestIsExpired:
    def test_open_before_deadline(self):
        assert is_expired(_sanction(NOW + timedelta(hours=1)), NOW) is False

    def test_expired_at_deadline(self):
        assert is_expired(_sanction(NOW), NOW) is True

    def test_expired_after_deadline(self):
        assert is_expired(_sanction(NOW - timedelta(seconds=1)), NOW) is True

    def test_flag_wins_over_clock(self):
        assert is_expired(_sanction(NOW + timedelta(days=3), expired=True), NOW) is True

    @pytest.mark.parametrize("later", [timedelta(0), timedelta(minutes=1), timedelta(days=400)])
    def test_monotonic(self, later):
        sanction = _sanction(NOW - timedelta(minutes=5))
        assert is_expired(sanction, NOW)
        assert is_expired(sanction, NOW + later)

    def test_naive_deadline_treated_as_utc(self):
        deadline = (NOW - timedelta(hours=1)).replace(tzinfo=None)
        assert is_expired(_sanction(deadline), NOW) is True

    def test_pure(self):
        sanction = _sanction(NOW - timedelta(hours=1))
        is_expired(sanction, NOW)
        assert sanction.expired is False


class TestTransitionHelpers:
    def test_needs_transition_only_when_flag_lags(self):
        assert needs_expiry_transition(_sanction(NOW - timedelta(hours=1)), NOW) is True
        assert needs_expiry_transition(_sanction(NOW - timedelta(hours=1), expired=True), NOW) is False
        assert needs_expiry_transition(_sanction(NOW + timedelta(hours=1)), NOW) is False

    def test_compute_deadline(self):
        assert compute_deadline(NOW, 5) == NOW + timedelta(days=5)

    def test_time_remaining(self):
        assert time_remaining(_sanction(NOW + timedelta(hours=3)), NOW) == timedelta(hours=3)
        assert time_remaining(_sanction(NOW - timedelta(hours=3)), NOW) == timedelta(0)
