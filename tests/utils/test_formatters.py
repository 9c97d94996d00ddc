from __future__ import annotations

from datetime import datetime

from cloudpc_manager.utils import (
    EMPTY_PLACEHOLDER,
    format_bool,
    format_grace_end,
    format_optional,
)


def test_format_grace_end() -> None:
    assert format_grace_end(datetime(2024, 5, 1, 13, 45, 59)) == "2024-05-01 13:45"
    assert format_grace_end("soon") == "soon"
    assert format_grace_end(None) == ""
    assert format_grace_end(None, empty=EMPTY_PLACEHOLDER) == EMPTY_PLACEHOLDER


def test_format_optional() -> None:
    assert format_optional(None) == EMPTY_PLACEHOLDER
    assert format_optional("") == EMPTY_PLACEHOLDER
    assert format_optional(3) == "3"


def test_format_bool() -> None:
    assert format_bool(True) == "True"
    assert format_bool(False) == "False"
