from __future__ import annotations

import pytest

from pi_remote.core.commands import (
    COMMAND_CANCEL,
    COMMAND_TABLE,
    Command,
    CommandKind,
    assert_non_prefixing,
    route,
)


@pytest.mark.parametrize(
    ("text", "kind"),
    [
        ("/start", CommandKind.START),
        ("/status", CommandKind.STATUS),
        ("/where", CommandKind.LOCATION),
        ("/reboot", CommandKind.REBOOT),
        ("/shutdown", CommandKind.SHUTDOWN),
        ("/help", CommandKind.HELP),
        ("/status now please", CommandKind.STATUS),
        ("/statusfoo", CommandKind.STATUS),
    ],
)
def test_route_matches_leading_prefix(text: str, kind: CommandKind) -> None:
    assert route(text) == Command(kind=kind, text=text)


@pytest.mark.parametrize("text", ["/xyz", "status", " /status", "/STATUS", "hello"])
def test_route_returns_unknown_with_original_text(text: str) -> None:
    assert route(text) == Command(kind=CommandKind.UNKNOWN, text=text)


def test_cancel_is_not_a_top_level_command() -> None:
    assert route("/cancel").kind is CommandKind.UNKNOWN


@pytest.mark.parametrize("text", [None, ""])
def test_route_handles_missing_text(text) -> None:
    assert route(text) == Command(kind=CommandKind.UNKNOWN, text="")


def test_first_match_wins_in_table_order() -> None:
    table = (("/a", CommandKind.HELP), ("/ab", CommandKind.STATUS))
    assert route("/abc", table).kind is CommandKind.HELP


def test_builtin_tokens_do_not_shadow_each_other() -> None:
    assert_non_prefixing([token for token, _ in COMMAND_TABLE] + [COMMAND_CANCEL])


def test_assert_non_prefixing_rejects_shadowing_tokens() -> None:
    with pytest.raises(ValueError, match="shadows"):
        assert_non_prefixing(["/stat", "/status"])
