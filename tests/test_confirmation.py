from __future__ import annotations

import pytest

from pi_remote.core.confirmation import (
    MESSAGE_CANCELED,
    MESSAGE_ERROR,
    MESSAGE_REBOOTING,
    MESSAGE_SHUTTING_DOWN,
    CallbackDecision,
    ConfirmationLedger,
    DecisionKind,
    PendingAction,
    decode_callback_token,
    terminal_text,
)


@pytest.mark.parametrize(
    ("data", "kind", "action", "text"),
    [
        ("/cancel", DecisionKind.CANCEL, None, MESSAGE_CANCELED),
        ("/reboot", DecisionKind.CONFIRM, PendingAction.REBOOT, MESSAGE_REBOOTING),
        (
            "/shutdown",
            DecisionKind.CONFIRM,
            PendingAction.SHUTDOWN,
            MESSAGE_SHUTTING_DOWN,
        ),
        ("/status", DecisionKind.INVALID, None, MESSAGE_ERROR),
        ("garbage", DecisionKind.INVALID, None, MESSAGE_ERROR),
        ("", DecisionKind.INVALID, None, MESSAGE_ERROR),
        (None, DecisionKind.INVALID, None, MESSAGE_ERROR),
    ],
)
def test_decode_and_terminal_text(data, kind, action, text) -> None:
    decision = decode_callback_token(data)
    assert decision.kind is kind
    assert decision.action is action
    assert terminal_text(decision) == text


def test_terminal_texts_match_user_facing_copy() -> None:
    assert MESSAGE_CANCELED == "Canceled"
    assert MESSAGE_REBOOTING == "Rebooting..."
    assert MESSAGE_SHUTTING_DOWN == "Shutting down..."


def test_confirm_without_action_is_an_error() -> None:
    assert terminal_text(CallbackDecision(kind=DecisionKind.CONFIRM)) == MESSAGE_ERROR


def test_pending_action_tokens_are_the_command_strings() -> None:
    assert PendingAction.REBOOT.token == "/reboot"
    assert PendingAction.SHUTDOWN.token == "/shutdown"


class _Clock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_ledger_remembers_actioned_prompts_until_ttl() -> None:
    clock = _Clock()
    ledger = ConfirmationLedger(ttl_seconds=60, clock=clock)
    assert ledger.was_actioned(1, 2) is False

    ledger.record(1, 2)
    assert ledger.was_actioned(1, 2) is True
    assert ledger.was_actioned(1, 3) is False

    clock.now += 59
    assert ledger.was_actioned(1, 2) is True
    clock.now += 2
    assert ledger.was_actioned(1, 2) is False
    assert len(ledger) == 0


def test_ledger_evicts_oldest_entries_past_capacity() -> None:
    ledger = ConfirmationLedger(max_entries=2, clock=_Clock())
    ledger.record(1, 1)
    ledger.record(1, 2)
    ledger.record(1, 3)
    assert ledger.was_actioned(1, 1) is False
    assert ledger.was_actioned(1, 2) is True
    assert ledger.was_actioned(1, 3) is True
