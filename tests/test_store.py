from concurrent.futures import ThreadPoolExecutor

import pytest

from github_feed.normalizer import normalize_event
from github_feed.schemas import FeedKind, FeedRecord
from github_feed.store import FeedStore, StoreError

from conftest import make_comment_payload, make_issue_payload


def _comment(comment_id, created_at, body="looks good"):
    return normalize_event(
        "issue_comment",
        make_comment_payload(comment_id=comment_id, created_at=created_at, body=body),
        "me",
    )


def test_initialize_is_idempotent(store):
    store.initialize()
    store.initialize()
    assert store.count() == 0


def test_concurrent_initialization(tmp_path):
    store = FeedStore(f"sqlite:///{tmp_path / 'concurrent.db'}")
    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(lambda _: store.initialize(), range(16)))
    assert store.count() == 0


def test_upsert_twice_keeps_one_copy(store):
    record = _comment(9001, "2024-01-01T12:00:00Z")
    store.upsert(record)
    store.upsert(record)

    items = store.query()
    assert store.count() == 1
    assert [item.id for item in items] == [9001]
    assert items[0] == record


def test_last_write_wins_without_merging(store):
    store.upsert(_comment(9001, "2024-01-01T12:00:00Z", body="first"))
    replacement = _comment(9001, "2024-01-03T09:00:00Z", body="second")
    replacement.parent_title = None
    store.upsert(replacement)

    (item,) = store.query()
    assert item.body == "second"
    assert item.parent_title is None
    assert item.occurred_at == "2024-01-03T09:00:00Z"
    assert item.derived_date == "2024-01-03"
    assert store.query("2024-01-01") == []


def test_derived_date_is_recomputed(store):
    record = _comment(1, "2024-01-01T23:30:00-02:00")
    record.derived_date = "1999-12-31"
    store.upsert(record)

    (item,) = store.query()
    assert item.derived_date == "2024-01-02"


def test_query_orders_newest_first(store):
    store.upsert(_comment(1, "2024-01-01T08:00:00Z"))
    store.upsert(_comment(2, "2024-01-02T08:00:00Z"))
    store.upsert(_comment(3, "2024-01-01T20:00:00Z"))

    assert [item.id for item in store.query()] == [2, 3, 1]


def test_ties_break_by_id_descending(store):
    store.upsert(_comment(10, "2024-01-01T08:00:00Z"))
    store.upsert(_comment(30, "2024-01-01T08:00:00Z"))
    store.upsert(_comment(20, "2024-01-01T08:00:00Z"))

    assert [item.id for item in store.query()] == [30, 20, 10]


def test_date_filter_is_a_partition_of_all_items(store):
    store.upsert(_comment(1, "2024-01-01T08:00:00Z"))
    store.upsert(_comment(2, "2024-01-02T08:00:00Z"))
    store.upsert(_comment(3, "2024-01-01T20:00:00Z"))
    store.upsert(normalize_event("issues", make_issue_payload(action="opened"), "me"))

    everything = store.query()
    for day in {item.derived_date for item in everything}:
        expected = [item for item in everything if item.derived_date == day]
        assert store.query(day) == expected
    assert [item.id for item in store.query("2024-01-01")] == [3, 55511704103200, 1]


@pytest.mark.parametrize("date", ["2024-13-45", "yesterday", "2024-01-01T08"])
def test_malformed_dates_match_nothing(store, date):
    store.upsert(_comment(1, "2024-01-01T08:00:00Z"))
    assert store.query(date) == []


def test_event_records_round_trip(store):
    record = normalize_event("issues", make_issue_payload(action="reopened"), "closer")
    store.upsert(record)

    (item,) = store.query()
    assert item.kind is FeedKind.EVENT
    assert item.lifecycle_action.value == "reopened"
    assert item.is_own is True
    assert item.body is None
    assert item.upstream_id == 555


def test_concurrent_upserts_of_distinct_ids(store):
    records = [_comment(i, f"2024-01-01T{i % 24:02d}:00:00Z") for i in range(1, 41)]
    store.initialize()
    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(store.upsert, records))
    assert store.count() == 40


def test_concurrent_upserts_of_one_id_never_mix_fields(store):
    variants = [
        normalize_event(
            "issue_comment",
            make_comment_payload(
                comment_id=9001,
                body=f"revision {i}",
                created_at=f"2024-01-0{1 + i % 3}T{i:02d}:00:00Z",
                author=f"user{i}",
            ),
            "user3",
        )
        for i in range(12)
    ]
    store.initialize()
    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(store.upsert, variants * 3))

    items = store.query()
    assert len(items) == 1
    assert items[0] in variants


def test_ids_beyond_64_bits_round_trip(store):
    record = normalize_event(
        "issues", make_issue_payload(issue_id=3_000_000_000, action="opened"), "me"
    )
    store.upsert(record)
    store.upsert(record)
    store.upsert(_comment(9001, "2024-01-01T10:00:00Z"))

    assert [item.id for item in store.query()] == [300000000011704103200, 9001]
    assert store.count() == 2


def test_offset_timestamps_sort_by_instant(store):
    late = _comment(1, "2024-01-02T00:00:00Z")
    later = _comment(2, "2024-01-02T00:00:00Z")
    later.occurred_at = "2024-01-01T23:30:00-05:00"
    store.upsert(late)
    store.upsert(later)

    items = store.query("2024-01-02")
    assert [item.id for item in items] == [2, 1]
    assert items[0].occurred_at == "2024-01-02T04:30:00Z"


def test_storage_failure_raises_store_error(tmp_path):
    missing_dir = tmp_path / "does-not-exist" / "feed.db"
    store = FeedStore(f"sqlite:///{missing_dir}")
    record = FeedRecord(
        id=1,
        kind="comment",
        occurred_at="2024-01-01T00:00:00Z",
        actor_login="me",
        actor_avatar_url="",
        repository_full_name="octo/widgets",
        activity_url="https://github.com/octo/widgets/issues/1#issuecomment-1",
        parent_url="https://github.com/octo/widgets/issues/1",
        parent_number=1,
        body="hi",
    )
    with pytest.raises(StoreError):
        store.upsert(record)
