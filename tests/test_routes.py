from dataclasses import dataclass

import pytest

from lotogen import create_app
from lotogen.config import TestingConfig
from lotogen.errors import StorageUnavailableError
from lotogen.repositories.memory_repository import InMemoryStatisticsRepository

ALICE = {"X-User-Id": "alice"}
BOB = {"X-User-Id": "bob"}
ADMIN = {"X-User-Id": "root", "X-User-Is-Admin": "true"}


def _save(client, headers=ALICE, **payload):
    body = {"game_type": "pale", **payload}
    return client.post("/numbers", json=body, headers=headers)


def test_health(client):
    resp = client.get("/health")

    assert resp.status_code == 200
    assert resp.get_json() == {"success": True, "data": {"status": "ok", "storage": "memory"}, "error": None}


def test_games(client):
    data = client.get("/games").get_json()["data"]

    assert [g["name"] for g in data] == ["leidsa", "kino", "pale", "tripleta"]
    leidsa = data[0]
    assert leidsa["has_secondary"] is True
    assert (leidsa["secondary_min"], leidsa["secondary_max"]) == (1, 12)


def test_unknown_route_is_enveloped(client):
    resp = client.get("/nope")

    assert resp.status_code == 404
    assert resp.get_json()["error"]["code"] == "not_found"


def test_demo_is_anonymous_and_not_saved(client, draw_repo):
    resp = client.post("/draw/demo", json={"game_type": "kino", "quantity": 3})

    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["demo"] is True
    assert data["quantity"] == 3
    for draw in data["numbers"]:
        assert len(draw["numbers"]) == 10
        assert draw["numbers"] == sorted(set(draw["numbers"]))
        assert draw["mas"] is None
    assert client.get("/numbers", headers=ALICE).get_json()["data"]["pagination"]["total"] == 0


def test_demo_quantity_limit(client):
    resp = client.post("/draw/demo", json={"game_type": "kino", "quantity": 6})

    assert resp.status_code == 400
    body = resp.get_json()
    assert body["success"] is False
    assert body["error"]["code"] == "validation_error"
    assert "quantity" in body["error"]["details"]


def test_save_requires_identity(client):
    resp = _save(client, headers={})

    assert resp.status_code == 401
    assert resp.get_json()["error"]["code"] == "not_authenticated"


def test_save_and_list(client):
    resp = _save(client, game_type="leidsa", quantity=2, include_mas=True)

    assert resp.status_code == 201
    body = resp.get_json()
    assert "warnings" not in body
    saved = body["data"]["numbers"]
    assert len(saved) == 2
    assert all(1 <= r["mas"] <= 12 for r in saved)
    assert all(r["owner_id"] == "alice" for r in saved)

    listing = client.get("/numbers", headers=ALICE).get_json()["data"]
    assert {r["id"] for r in listing["items"]} == {r["id"] for r in saved}
    assert listing["pagination"] == {"total": 2, "limit": 10, "offset": 0, "total_pages": 1, "current_page": 1}

    assert client.get("/numbers", headers=BOB).get_json()["data"]["items"] == []


def test_save_rejects_conflicting_mas_flags(client):
    resp = _save(client, game_type="leidsa", include_mas=True, generate_mas_only=True)

    assert resp.status_code == 400
    assert resp.get_json()["error"]["code"] == "validation_error"


def test_save_rejects_mas_for_game_without_it(client):
    resp = _save(client, game_type="kino", include_mas=True)

    assert resp.status_code == 400
    assert resp.get_json()["error"]["code"] == "invalid_options"


def test_save_rejects_unknown_game(client):
    resp = _save(client, game_type="powerball")

    assert resp.status_code == 400
    assert "game_type" in resp.get_json()["error"]["details"]


class BrokenStatistics(InMemoryStatisticsRepository):
    def increment(self, increments, seen_at):
        raise StorageUnavailableError()


def test_statistics_failure_is_a_warning(draw_repo):
    client = create_app(TestingConfig, draws=draw_repo, statistics=BrokenStatistics()).test_client()

    resp = _save(client)

    assert resp.status_code == 201
    body = resp.get_json()
    assert body["success"] is True
    assert [w["code"] for w in body["warnings"]] == ["statistics_update_failed"]
    assert body["warnings"][0]["details"]["record_id"] == body["data"]["numbers"][0]["id"]
    assert draw_repo.get(body["data"]["numbers"][0]["id"]) is not None


def test_delete_own_number(client):
    record_id = _save(client).get_json()["data"]["numbers"][0]["id"]

    assert client.delete(f"/numbers/{record_id}", headers=BOB).status_code == 403
    resp = client.delete(f"/numbers/{record_id}", headers=ALICE)
    assert resp.status_code == 200
    assert resp.get_json()["data"] == {"id": record_id, "is_deleted": True}
    assert client.delete(f"/numbers/{record_id}", headers=ALICE).status_code == 200
    assert client.get("/numbers", headers=ALICE).get_json()["data"]["items"] == []


def test_delete_missing_number(client):
    resp = client.delete("/numbers/missing", headers=ALICE)

    assert resp.status_code == 404
    assert resp.get_json()["error"]["code"] == "not_found"


def test_delete_all_numbers(client):
    _save(client, quantity=3)

    resp = client.delete("/numbers", headers=ALICE)

    assert resp.get_json()["data"] == {"deleted": 3}


def test_my_stats(client):
    _save(client, game_type="tripleta", quantity=2)

    data = client.get("/stats/me", headers=ALICE).get_json()["data"]

    assert data["total_generations"] == 2
    assert data["per_game_counts"] == {"leidsa": 0, "kino": 0, "pale": 0, "tripleta": 2}
    assert data["most_recent_activity_bucket"] == "<1 hour"


def test_hot_cold(client):
    _save(client, game_type="tripleta", quantity=3)

    data = client.get("/stats/tripleta/hot-cold?limit=3").get_json()["data"]

    assert data["scope"] == "tripleta"
    assert len(data["hot"]) == 3
    assert len(data["cold"]) == 3
    assert all(item["frequency"] == 0 for item in data["cold"])


def test_hot_cold_mas_for_kino(client):
    resp = client.get("/stats/kino/hot-cold?mas=true")

    assert resp.status_code == 400
    assert resp.get_json()["error"]["code"] == "invalid_options"


def test_hot_cold_unknown_game(client):
    resp = client.get("/stats/powerball/hot-cold")

    assert resp.status_code == 400
    assert resp.get_json()["error"]["code"] == "invalid_game_type"


def test_frequency(client):
    _save(client, game_type="pale")

    data = client.get("/stats/pale/frequency").get_json()["data"]

    assert data["total_appearances"] == 2
    assert len(data["numbers"]) == 100
    assert sum(n["percentage"] for n in data["numbers"]) == pytest.approx(100.0)


@pytest.mark.parametrize(
    "method, path",
    [
        ("get", "/admin/numbers"),
        ("get", "/admin/stats"),
        ("get", "/admin/users/alice/stats"),
        ("post", "/admin/numbers/x/restore"),
        ("post", "/admin/statistics/pale/rebuild"),
    ],
)
def test_admin_routes_reject_non_admin(client, method, path):
    resp = getattr(client, method)(path, headers=ALICE)

    assert resp.status_code == 403
    assert resp.get_json()["error"]["code"] == "not_admin"


def test_admin_list_delete_restore(client):
    record_id = _save(client).get_json()["data"]["numbers"][0]["id"]
    _save(client, headers=BOB)

    assert client.delete(f"/admin/numbers/{record_id}", headers=ADMIN).status_code == 200

    active = client.get("/admin/numbers", headers=ADMIN).get_json()["data"]
    assert active["pagination"]["total"] == 1
    everything = client.get("/admin/numbers?include_deleted=true", headers=ADMIN).get_json()["data"]
    assert everything["pagination"]["total"] == 2
    alice_only = client.get("/admin/numbers?owner_id=alice&include_deleted=true", headers=ADMIN).get_json()["data"]
    assert [r["is_deleted"] for r in alice_only["items"]] == [True]

    resp = client.post(f"/admin/numbers/{record_id}/restore", headers=ADMIN)
    assert resp.get_json()["data"] == {"id": record_id, "is_deleted": False}
    assert client.get("/numbers", headers=ALICE).get_json()["data"]["pagination"]["total"] == 1


def test_admin_overview(client):
    _save(client, quantity=2)
    _save(client, headers=BOB, game_type="kino")

    data = client.get("/admin/stats", headers=ADMIN).get_json()["data"]

    assert data["numbers"] == {
        "total_numbers": 3,
        "deleted_numbers": 0,
        "new_numbers_week": 3,
        "new_numbers_month": 3,
    }
    assert data["games"] == [{"game_type": "kino", "count": 1}, {"game_type": "pale", "count": 2}]
    assert [o["owner_id"] for o in data["owners"]["items"]] == ["alice", "bob"]


def test_admin_owner_stats(client):
    _save(client, headers=BOB, quantity=2)

    data = client.get("/admin/users/bob/stats", headers=ADMIN).get_json()["data"]

    assert data["owner_id"] == "bob"
    assert data["total_generations"] == 2


def test_admin_rebuild_statistics(client):
    _save(client, quantity=2)
    client.delete("/numbers", headers=ALICE)

    data = client.post("/admin/statistics/pale/rebuild", headers=ADMIN).get_json()["data"]

    assert data == {"game_type": "pale", "numbers_written": 0, "drift": 0}
    hot = client.get("/stats/pale/hot-cold").get_json()["data"]["hot"]
    assert hot == []


@dataclass(frozen=True)
class SmallQuotaConfig(TestingConfig):
    MAX_QUANTITY: int = 3
    DEMO_MAX_QUANTITY: int = 2


def test_quantity_caps_follow_config(draw_repo, stats_repo):
    client = create_app(SmallQuotaConfig, draws=draw_repo, statistics=stats_repo).test_client()

    assert _save(client, quantity=4).status_code == 400
    assert _save(client, quantity=3).status_code == 201
    demo = client.post("/draw/demo", json={"game_type": "pale", "quantity": 3})
    assert demo.status_code == 400
    assert "quantity" in demo.get_json()["error"]["details"]


def test_game_type_is_case_insensitive(client):
    resp = _save(client, game_type=" Pale ")

    assert resp.status_code == 201
    assert resp.get_json()["data"]["game_type"] == "pale"
    listing = client.get("/numbers?game_type=PALE", headers=ALICE).get_json()["data"]
    assert listing["pagination"]["total"] == 1
    assert client.post("/draw/demo", json={"game_type": "KINO"}).status_code == 200


def test_my_stats_favorites(client):
    _save(client, game_type="pale")

    data = client.get("/stats/me", headers=ALICE).get_json()["data"]

    assert data["most_used_game_type"] == "pale"
    assert [f["count"] for f in data["favorite_numbers"]] == [1, 1]
