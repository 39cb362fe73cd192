"""
Unit Tests: CooldownTracker and AccessPolicy
"""

import pytest

from flowbot.commands import AccessPolicy
from flowbot.core.error_handling import Cooldown
from flowbot.session import CooldownTracker


@pytest.fixture
def cooldowns(clock):
    return CooldownTracker(60, clock=clock)


def test_second_invocation_inside_window_is_rejected(cooldowns, clock):
    cooldowns.check_and_record(1, "order_item")
    clock.advance(10)

    with pytest.raises(Cooldown) as exc_info:
        cooldowns.check_and_record(1, "order_item")

    assert exc_info.value.retry_after == pytest.approx(50)
    assert cooldowns.remaining(1, "order_item") == pytest.approx(50)


def test_window_expires(cooldowns, clock):
    cooldowns.check_and_record(1, "order_item")
    clock.advance(60)

    cooldowns.check_and_record(1, "order_item")


def test_rejected_attempt_does_not_extend_window(cooldowns, clock):
    cooldowns.check_and_record(1, "order_item")
    clock.advance(30)
    with pytest.raises(Cooldown):
        cooldowns.check_and_record(1, "order_item")

    clock.advance(30)
    cooldowns.check_and_record(1, "order_item")


def test_different_command_replaces_record(cooldowns, clock):
    cooldowns.check_and_record(1, "order_item")
    cooldowns.check_and_record(1, "customer_info")

    # Only the most recent command is remembered
    cooldowns.check_and_record(1, "order_item")
    with pytest.raises(Cooldown):
        cooldowns.check_and_record(1, "order_item")


def test_users_are_independent(cooldowns):
    cooldowns.check_and_record(1, "order_item")
    cooldowns.check_and_record(2, "order_item")


def test_zero_period_and_anonymous_users_skip_gating(clock):
    disabled = CooldownTracker(0, clock=clock)
    disabled.check_and_record(1, "x")
    disabled.check_and_record(1, "x")

    enabled = CooldownTracker(60, clock=clock)
    enabled.check_and_record(None, "x")
    enabled.check_and_record(None, "x")
    assert enabled.remaining(None, "x") == 0


def test_reset_clears_user(cooldowns):
    cooldowns.check_and_record(1, "x")
    cooldowns.reset(1)
    cooldowns.check_and_record(1, "x")


def test_access_policy():
    policy = AccessPolicy(["42", 7])

    assert policy.is_privileged(42)
    assert policy.is_privileged(7)
    assert not policy.is_privileged(1)
    assert not policy.is_privileged(None)
