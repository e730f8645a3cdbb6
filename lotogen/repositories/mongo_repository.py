"""MongoDB storage backend."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Sequence
from contextlib import contextmanager
from datetime import datetime
from typing import Any

from pymongo import ASCENDING, DESCENDING, UpdateOne
from pymongo.database import Database
from pymongo.errors import ConnectionFailure, ExecutionTimeout, PyMongoError

from lotogen.errors import StorageUnavailableError
from lotogen.repositories.base import ActiveDraw, DrawRepository, StatisticsRepository
from lotogen.repositories.records import (
    DrawQuery,
    DrawRecord,
    NumberStatisticRecord,
    OwnerSummary,
    Page,
    as_utc,
)

logger = logging.getLogger(__name__)

DRAWS = "lottery_numbers"
STATISTICS = "number_statistics"


@contextmanager
def _guard() -> Iterator[None]:
    try:
        yield
    except (ConnectionFailure, ExecutionTimeout) as exc:
        logger.warning("Mongo storage unavailable: %s", exc)
        raise StorageUnavailableError(details={"backend": "mongo"}) from exc


def ensure_indexes(db: Database) -> None:
    db[DRAWS].create_index("id", unique=True)
    db[DRAWS].create_index([("owner_id", ASCENDING), ("generated_at", DESCENDING)])
    db[DRAWS].create_index([("game_type", ASCENDING), ("is_deleted", ASCENDING)])
    db[STATISTICS].create_index([("number", ASCENDING), ("scope", ASCENDING)], unique=True)


def _filter(query: DrawQuery) -> dict[str, Any]:
    f: dict[str, Any] = {}
    if query.owner_id is not None:
        f["owner_id"] = query.owner_id
    if query.game_type is not None:
        f["game_type"] = query.game_type
    if query.deleted_only:
        f["is_deleted"] = True
    elif not query.include_deleted:
        f["is_deleted"] = False
    if query.generated_since is not None:
        f["generated_at"] = {"$gte": query.generated_since}
    return f


def _to_record(doc: dict[str, Any]) -> DrawRecord:
    mas = doc.get("mas_number")
    return DrawRecord(
        id=str(doc.get("id")),
        owner_id=str(doc.get("owner_id")),
        game_type=str(doc.get("game_type")),
        main_numbers=tuple(int(n) for n in (doc.get("numbers") or [])),
        secondary_number=int(mas) if mas is not None else None,
        generated_at=as_utc(doc.get("generated_at")),  # type: ignore[arg-type]
        is_deleted=bool(doc.get("is_deleted")),
        deleted_at=as_utc(doc.get("deleted_at")),
    )


class MongoDrawRepository(DrawRepository):
    def __init__(self, db: Database) -> None:
        self._col = db[DRAWS]

    def add_many(self, records: Sequence[DrawRecord]) -> None:
        # $setOnInsert keeps a repeated call from touching records it already stored.
        ops = [
            UpdateOne(
                {"id": record.id},
                {
                    "$setOnInsert": {
                        "id": record.id,
                        "owner_id": record.owner_id,
                        "game_type": record.game_type,
                        "numbers": [int(n) for n in record.main_numbers],
                        "mas_number": record.secondary_number,
                        "generated_at": record.generated_at,
                        "is_deleted": record.is_deleted,
                        "deleted_at": record.deleted_at,
                    }
                },
                upsert=True,
            )
            for record in records
        ]
        if not ops:
            return
        try:
            with _guard():
                self._col.bulk_write(ops, ordered=True)
        except StorageUnavailableError:
            self._discard([r.id for r in records])
            raise

    def _discard(self, ids: list[str]) -> None:
        """Remove what a failed batch managed to write. Without a replica set there is no transaction."""

        try:
            self._col.delete_many({"id": {"$in": ids}})
        except PyMongoError as exc:
            logger.error("Could not remove partial batch %s: %s", ids, exc)

    def get(self, record_id: str) -> DrawRecord | None:
        with _guard():
            doc = self._col.find_one({"id": record_id}, {"_id": 0})
        return _to_record(doc) if doc else None

    def find(self, query: DrawQuery) -> Page[DrawRecord]:
        f = _filter(query)
        with _guard():
            total = int(self._col.count_documents(f))
            cur = (
                self._col.find(f, {"_id": 0})
                .sort([("generated_at", DESCENDING), ("id", DESCENDING)])
                .skip(int(query.offset))
                .limit(int(query.limit))
            )
            items = [_to_record(d) for d in cur]
        return Page(items=items, total=total, limit=query.limit, offset=query.offset)

    def count(self, query: DrawQuery) -> int:
        with _guard():
            return int(self._col.count_documents(_filter(query)))

    def count_by_game(self, query: DrawQuery) -> dict[str, int]:
        pipeline = [
            {"$match": _filter(query)},
            {"$group": {"_id": "$game_type", "count": {"$sum": 1}}},
        ]
        with _guard():
            return {str(d["_id"]): int(d["count"]) for d in self._col.aggregate(pipeline)}

    def latest_generated_at(self, owner_id: str) -> datetime | None:
        with _guard():
            doc = self._col.find_one(
                {"owner_id": owner_id, "is_deleted": False},
                {"_id": 0, "generated_at": 1},
                sort=[("generated_at", DESCENDING)],
            )
        return as_utc(doc.get("generated_at")) if doc else None

    def mark_deleted(self, record_id: str, deleted_at: datetime) -> bool:
        with _guard():
            res = self._col.update_one(
                {"id": record_id, "is_deleted": False},
                {"$set": {"is_deleted": True, "deleted_at": deleted_at}},
            )
        return res.modified_count > 0

    def mark_restored(self, record_id: str) -> bool:
        with _guard():
            res = self._col.update_one(
                {"id": record_id, "is_deleted": True},
                {"$set": {"is_deleted": False, "deleted_at": None}},
            )
        return res.modified_count > 0

    def mark_all_deleted(self, owner_id: str, deleted_at: datetime) -> int:
        with _guard():
            res = self._col.update_many(
                {"owner_id": owner_id, "is_deleted": False},
                {"$set": {"is_deleted": True, "deleted_at": deleted_at}},
            )
        return int(res.modified_count)

    def owner_summaries(self, limit: int, offset: int) -> Page[OwnerSummary]:
        pipeline: list[dict[str, Any]] = [
            {
                "$group": {
                    "_id": "$owner_id",
                    "total": {"$sum": 1},
                    "deleted": {"$sum": {"$cond": ["$is_deleted", 1, 0]}},
                }
            },
            {"$sort": {"_id": 1}},
            {
                "$facet": {
                    "items": [{"$skip": int(offset)}, {"$limit": int(limit)}],
                    "total": [{"$count": "n"}],
                }
            },
        ]
        with _guard():
            result = next(iter(self._col.aggregate(pipeline)), {"items": [], "total": []})
        total = int(result["total"][0]["n"]) if result.get("total") else 0
        items = [
            OwnerSummary(owner_id=str(d["_id"]), total_numbers=int(d["total"]), deleted_numbers=int(d["deleted"]))
            for d in result.get("items", [])
        ]
        return Page(items=items, total=total, limit=limit, offset=offset)

    def iter_active(self, game_type: str | None = None, owner_id: str | None = None) -> Iterator[ActiveDraw]:
        with _guard():
            docs = list(
                self._col.find(
                    _filter(DrawQuery(owner_id=owner_id, game_type=game_type)),
                    {"_id": 0, "numbers": 1, "mas_number": 1, "generated_at": 1},
                ).sort("generated_at", ASCENDING)
            )
        for d in docs:
            mas = d.get("mas_number")
            yield (
                tuple(int(n) for n in (d.get("numbers") or [])),
                int(mas) if mas is not None else None,
                as_utc(d.get("generated_at")),  # type: ignore[misc]
            )


class MongoStatisticsRepository(StatisticsRepository):
    def __init__(self, db: Database) -> None:
        self._col = db[STATISTICS]

    def increment(self, increments: Iterable[tuple[str, int]], seen_at: datetime) -> None:
        ops = [
            UpdateOne(
                {"number": int(number), "scope": str(scope)},
                {
                    "$inc": {"frequency": 1},
                    "$max": {"last_appearance": seen_at},
                    "$set": {"updated_at": seen_at},
                },
                upsert=True,
            )
            for scope, number in increments
        ]
        if not ops:
            return
        with _guard():
            self._col.bulk_write(ops, ordered=True)

    def list_scope(self, scope: str) -> list[NumberStatisticRecord]:
        with _guard():
            cur = self._col.find({"scope": scope}, {"_id": 0}).sort("number", ASCENDING)
            return [
                NumberStatisticRecord(
                    number=int(d["number"]),
                    scope=str(d["scope"]),
                    frequency=int(d.get("frequency") or 0),
                    last_appearance=as_utc(d.get("last_appearance")),
                )
                for d in cur
            ]

    def replace_scope(self, scope: str, stats: Iterable[NumberStatisticRecord]) -> None:
        docs = [
            {
                "number": int(s.number),
                "scope": scope,
                "frequency": int(s.frequency),
                "last_appearance": s.last_appearance,
                "updated_at": s.last_appearance,
            }
            for s in stats
        ]
        with _guard():
            self._col.delete_many({"scope": scope})
            if docs:
                self._col.insert_many(docs)
