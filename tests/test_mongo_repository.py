import os
import uuid
from datetime import timedelta

import mongomock
import pytest
from pymongo import MongoClient
from pymongo.errors import AutoReconnect, ServerSelectionTimeoutError

from lotogen.errors import StorageUnavailableError
from lotogen.repositories.mongo_repository import (
    DRAWS,
    MongoDrawRepository,
    MongoStatisticsRepository,
    _guard,
    ensure_indexes,
)
from lotogen.repositories.records import DrawQuery
from lotogen.services.draw_service import Draw, DrawOptions
from lotogen.services.record_service import DrawFilter, RecordService
from lotogen.services.statistics_service import StatisticsService


@pytest.fixture()
def mongo_db():
    """mongomock by default; a real server when MONGODB_TEST_URI is set."""

    uri = os.getenv("MONGODB_TEST_URI")
    if uri:
        client = MongoClient(uri, tz_aware=True, serverSelectionTimeoutMS=2000)
        name = f"lotogen_test_{uuid.uuid4().hex[:8]}"
        yield client[name]
        client.drop_database(name)
        client.close()
        return
    yield mongomock.MongoClient(tz_aware=True)["lotogen_test"]


@pytest.fixture()
def mongo_draws(mongo_db):
    ensure_indexes(mongo_db)
    return MongoDrawRepository(mongo_db)


@pytest.fixture()
def mongo_stats(mongo_db):
    return MongoStatisticsRepository(mongo_db)


@pytest.fixture()
def mongo_records(mongo_draws, mongo_stats, generator, no_wait_retry, clock):
    return RecordService(mongo_draws, mongo_stats, generator=generator, retry=no_wait_retry, clock=clock)


@pytest.fixture()
def mongo_statistics(mongo_draws, mongo_stats, no_wait_retry):
    return StatisticsService(mongo_draws, mongo_stats, retry=no_wait_retry)


def test_round_trip_preserves_fields(mongo_records, mongo_draws, alice):
    record = mongo_records.create_draw(alice, "leidsa", Draw("leidsa", (3, 8, 15, 22, 31, 40), 12)).record

    stored = mongo_draws.get(record.id)

    assert stored == record
    assert stored.generated_at.tzinfo is not None


def test_mas_only_round_trip(mongo_records, mongo_draws, alice):
    record = mongo_records.generate_and_save(alice, "leidsa", DrawOptions(secondary_only=True))[0].record

    stored = mongo_draws.get(record.id)
    assert stored.main_numbers == ()
    assert stored.secondary_number == record.secondary_number


def test_add_many_skips_stored_ids(mongo_records, mongo_draws, alice):
    record = mongo_records.create_draw(alice, "pale", Draw("pale", (1, 2))).record

    mongo_draws.add_many([record])

    assert mongo_draws.count(DrawQuery(include_deleted=True)) == 1


class PartialBulkWrite:
    """Collection proxy whose bulk_write applies the first op and then drops the connection."""

    def __init__(self, collection):
        self._collection = collection

    def __getattr__(self, name):
        return getattr(self._collection, name)

    def bulk_write(self, ops, ordered=True):
        self._collection.bulk_write(ops[:1], ordered=ordered)
        raise AutoReconnect("connection reset")


def test_failed_batch_leaves_nothing(mongo_records, mongo_draws, mongo_stats, alice):
    mongo_draws._col = PartialBulkWrite(mongo_draws._col)

    with pytest.raises(StorageUnavailableError):
        mongo_records.generate_and_save(alice, "pale", quantity=3)

    assert mongo_draws.count(DrawQuery(include_deleted=True)) == 0
    assert mongo_stats.list_scope("pale") == []


def test_guard_maps_connection_errors():
    with pytest.raises(StorageUnavailableError) as exc_info:
        with _guard():
            raise ServerSelectionTimeoutError("no servers")

    assert exc_info.value.details == {"retryable": True, "backend": "mongo"}


def test_increment_upserts_counters(mongo_stats, clock):
    first = clock()
    second = clock()
    mongo_stats.increment([("pale", 7), ("pale", 8)], second)
    mongo_stats.increment([("pale", 7)], first)

    rows = {s.number: s for s in mongo_stats.list_scope("pale")}
    assert rows[7].frequency == 2
    assert rows[7].last_appearance == second
    assert rows[8].frequency == 1
    assert mongo_stats.list_scope("kino") == []


def test_replace_scope(mongo_stats, mongo_records, mongo_statistics, alice, admin):
    keep = mongo_records.create_draw(alice, "pale", Draw("pale", (10, 20))).record
    drop = mongo_records.create_draw(alice, "pale", Draw("pale", (10, 30))).record
    mongo_records.soft_delete(alice, drop.id)

    assert len(mongo_statistics.find_drift("pale")) == 2
    assert mongo_statistics.rebuild_statistics(admin, "pale") == 2

    rows = {s.number: s for s in mongo_stats.list_scope("pale")}
    assert {n: s.frequency for n, s in rows.items()} == {10: 1, 20: 1}
    assert rows[10].last_appearance == keep.generated_at
    assert mongo_statistics.find_drift("pale") == []


def test_pagination(mongo_records, alice):
    saved = [mongo_records.create_draw(alice, "pale", Draw("pale", (i, i + 50))).record for i in range(25)]

    pages = [mongo_records.list_draws(alice, DrawFilter(limit=10, offset=o)) for o in (0, 10, 20)]

    assert [len(p.items) for p in pages] == [10, 10, 5]
    assert [r.id for p in pages for r in p.items] == [r.id for r in reversed(saved)]
    assert pages[0].total == 25


def test_soft_delete_restore(mongo_records, mongo_draws, alice, admin):
    record = mongo_records.create_draw(alice, "tripleta", Draw("tripleta", (1, 2, 3))).record

    mongo_records.soft_delete(alice, record.id)
    deleted = mongo_draws.get(record.id)
    assert deleted.is_deleted is True
    assert mongo_draws.mark_deleted(record.id, deleted.deleted_at) is False

    mongo_records.restore(admin, record.id)
    assert mongo_draws.get(record.id) == record


def test_counts_and_owner_summaries(mongo_records, mongo_draws, alice, bob, admin, clock):
    a = mongo_records.create_draw(alice, "kino", Draw("kino", tuple(range(1, 11)))).record
    clock.advance(timedelta(days=8))
    mongo_records.create_draw(alice, "pale", Draw("pale", (1, 2)))
    mongo_records.create_draw(bob, "pale", Draw("pale", (3, 4)))
    mongo_records.soft_delete(alice, a.id)

    assert mongo_draws.count(DrawQuery(deleted_only=True)) == 1
    assert mongo_draws.count_by_game(DrawQuery()) == {"pale": 2}

    overview = mongo_records.admin_overview(admin)
    assert overview.total_numbers == 3
    assert overview.new_numbers_week == 2
    assert overview.owners.total == 2
    assert [(o.owner_id, o.total_numbers, o.deleted_numbers) for o in overview.owners.items] == [
        ("alice", 2, 1),
        ("bob", 1, 0),
    ]

    stats = mongo_records.compute_user_stats(alice)
    assert stats.total_generations == 1
    assert stats.most_used_game_type == "pale"
    assert [f.number for f in stats.favorite_numbers] == [1, 2]


def test_soft_delete_all(mongo_records, alice, bob):
    for i in range(3):
        mongo_records.create_draw(alice, "pale", Draw("pale", (i, 90)))
    mongo_records.create_draw(bob, "pale", Draw("pale", (5, 6)))

    assert mongo_records.soft_delete_all(alice) == 3
    assert mongo_records.list_draws(alice).total == 0
    assert mongo_records.list_draws(bob).total == 1


def test_draws_collection_name(mongo_db, mongo_records, alice):
    mongo_records.create_draw(alice, "pale", Draw("pale", (1, 2)))
    assert mongo_db[DRAWS].count_documents({}) == 1
