"""Tests for the client-held sync cursor."""

from __future__ import annotations

import pytest

from exposure_server.core.errors import ArgumentRangeError
from exposure_server.core.models import MessageInfo, MessageListResponse
from exposure_server.core.sync import SyncCursor


def test_cursor_starts_at_zero():
    assert SyncCursor().last_timestamp == 0


def test_cursor_rejects_negative_watermark():
    with pytest.raises(ArgumentRangeError):
        SyncCursor(last_timestamp=-1)


def test_cursor_advances_to_max():
    cursor = SyncCursor()
    moved = cursor.advance(MessageListResponse.from_infos([MessageInfo("a", 10), MessageInfo("b", 30)]))
    assert moved
    assert cursor.last_timestamp == 30


def test_cursor_never_moves_backwards():
    cursor = SyncCursor(last_timestamp=50)
    assert not cursor.advance(MessageListResponse.from_infos([]))
    assert not cursor.advance(MessageListResponse.from_infos([MessageInfo("a", 20)]))
    assert cursor.last_timestamp == 50
