"""Unit tests for order status state-machine guardrails."""

import pytest

from orderpay.common.state_machine import FAILED, PAID, PENDING, InvalidTransitionError, sources_for, validate_transition


def test_valid_transition():
    """Sanity check: a pending order may be paid or failed."""

    validate_transition(PENDING, PAID)
    validate_transition(PENDING, FAILED)


def test_invalid_transition():
    """Terminal orders must never move, and nothing re-enters Pending."""

    with pytest.raises(InvalidTransitionError):
        validate_transition(PAID, FAILED)
    with pytest.raises(InvalidTransitionError):
        validate_transition(FAILED, PENDING)
    with pytest.raises(ValueError):
        validate_transition(PAID, PENDING)


def test_sources_for():
    assert sources_for(PAID) == {PENDING}
    assert sources_for(PENDING) == set()
