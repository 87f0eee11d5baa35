"""Tests for the in-memory message log."""

from datetime import datetime, timezone

import pytest

from conftest import make_raw
from wa_gateway.message_log import MessageLogBuffer
from wa_gateway.models.message import SearchCriteria
from wa_gateway.normalizer import normalize


def record(msg_id, **kwargs):
    return normalize(make_raw(msg_id=msg_id, **kwargs))


def test_keeps_only_most_recent():
    log = MessageLogBuffer()
    for i in range(1005):
        log.append(record(f"M{i}"))

    recent = log.recent(1000)
    assert len(log) == 1000
    assert len(recent) == 1000
    assert recent[0].id.endswith("_M5")
    assert recent[-1].id.endswith("_M1004")
    assert record("M4").id not in log


def test_redelivery_replaces_in_place():
    log = MessageLogBuffer(max_size=3)
    log.append(record("A", body="one"))
    log.append(record("B"))
    log.append(record("A", body="two"))

    assert len(log) == 2
    assert [r.body for r in log.recent(10)] == ["two", "hello"]


def test_redelivery_does_not_evict():
    log = MessageLogBuffer(max_size=2)
    log.append(record("A"))
    log.append(record("B"))
    log.append(record("B", body="again"))
    assert len(log) == 2
    assert record("A").id in log


def test_recent_limits():
    log = MessageLogBuffer()
    for i in range(5):
        log.append(record(f"M{i}"))
    assert [r.id[-2:] for r in log.recent(2)] == ["M3", "M4"]
    assert log.recent(0) == []


def test_invalid_size():
    with pytest.raises(ValueError):
        MessageLogBuffer(0)


def test_search():
    log = MessageLogBuffer()
    log.append(record("A", body="Order #12 shipped", timestamp=1700000000))
    log.append(record("B", body="hello", sender="972521111111@c.us", timestamp=1700003600))
    log.append(record("C", body="photo", type="image", timestamp=1700007200))

    assert [r.body for r in log.search(SearchCriteria(body="ORDER"))] == ["Order #12 shipped"]
    assert [r.body for r in log.search(SearchCriteria(from_address="97252111"))] == ["hello"]
    assert [r.body for r in log.search(SearchCriteria(type="image"))] == ["photo"]
    assert log.search(SearchCriteria(is_group=True)) == []
    after = datetime.fromtimestamp(1700003000, tz=timezone.utc)
    assert [r.body for r in log.search(SearchCriteria(after=after))] == ["hello", "photo"]
    before = datetime.fromtimestamp(1700003600, tz=timezone.utc)
    assert len(log.search(SearchCriteria(before=before))) == 2
    assert len(log.search()) == 3


def test_stats():
    log = MessageLogBuffer()
    now = 1700100000
    log.append(record("A", timestamp=now - 60))
    log.append(record("B", type="image", timestamp=now - 2 * 24 * 3600))

    stats = log.stats(now=now)
    assert stats.total_messages == 2
    assert stats.messages_by_type == {"chat": 1, "image": 1}
    assert sum(stats.messages_by_hour) == 2
    assert stats.recent_messages_24h == 1
    assert stats.last_message_at == datetime.fromtimestamp(now - 2 * 24 * 3600, tz=timezone.utc)


def test_mark_processed():
    log = MessageLogBuffer()
    r = record("A")
    log.append(r)
    log.mark_processed(r.id)
    assert log.get(r.id).processed
    log.mark_processed("unknown")


def test_mark_processed_by_short_id():
    log = MessageLogBuffer()
    first = normalize(make_raw(msg_id="AAA"))
    second = normalize(make_raw(msg_id="BBB"))
    log.append(first)
    log.append(second)

    assert log.mark_processed("AAA") == [first.id]
    assert log.get(first.id).processed
    assert not log.get(second.id).processed
    assert log.mark_processed("false_other@c.us_BBB") == []
