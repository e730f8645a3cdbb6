"""Administrator routes. Role checks happen in the services."""

from __future__ import annotations

from flask import Blueprint, request

from lotogen.auth import get_request_context
from lotogen.schemas.record import (
    AdminListDrawsQuerySchema,
    DrawRecordSchema,
    OwnerSummarySchema,
    PageQuerySchema,
    dump_page,
)
from lotogen.schemas.stats import UserStatsSchema
from lotogen.services import get_record_service, get_statistics_service
from lotogen.services.record_service import DrawFilter
from lotogen.utils.responses import ok

admin_bp = Blueprint("admin", __name__)

_list_query = AdminListDrawsQuerySchema()
_page_query = PageQuerySchema()
_record_schema = DrawRecordSchema()
_owner_schema = OwnerSummarySchema()
_user_stats_schema = UserStatsSchema()


@admin_bp.get("/numbers")
def list_numbers():
    data = _list_query.load(request.args)
    ctx = get_request_context()
    ctx.require_admin()

    page = get_record_service().list_draws(
        ctx,
        DrawFilter(
            owner_id=data.get("owner_id") or None,
            game_type=data.get("game_type"),
            limit=int(data["limit"]),
            offset=int(data["offset"]),
            include_deleted=bool(data["include_deleted"]),
        ),
    )
    return ok(dump_page(page, _record_schema))


@admin_bp.delete("/numbers/<record_id>")
def delete_number(record_id: str):
    ctx = get_request_context()
    ctx.require_admin()
    get_record_service().soft_delete(ctx, record_id)
    return ok({"id": record_id, "is_deleted": True})


@admin_bp.post("/numbers/<record_id>/restore")
def restore_number(record_id: str):
    get_record_service().restore(get_request_context(), record_id)
    return ok({"id": record_id, "is_deleted": False})


@admin_bp.get("/stats")
def overview():
    data = _page_query.load(request.args)
    result = get_record_service().admin_overview(
        get_request_context(),
        owners_limit=int(data["limit"]),
        owners_offset=int(data["offset"]),
    )
    return ok(
        {
            "numbers": {
                "total_numbers": result.total_numbers,
                "deleted_numbers": result.deleted_numbers,
                "new_numbers_week": result.new_numbers_week,
                "new_numbers_month": result.new_numbers_month,
            },
            "games": [{"game_type": g, "count": c} for g, c in sorted(result.games.items())],
            "owners": dump_page(result.owners, _owner_schema),
        }
    )


@admin_bp.get("/users/<owner_id>/stats")
def owner_stats(owner_id: str):
    ctx = get_request_context()
    ctx.require_admin()
    stats = get_record_service().compute_user_stats(ctx, owner_id=owner_id)
    return ok(_user_stats_schema.dump(stats))


@admin_bp.post("/statistics/<game_type>/rebuild")
def rebuild_statistics(game_type: str):
    service = get_statistics_service()
    written = service.rebuild_statistics(get_request_context(), game_type)
    return ok({"game_type": game_type, "numbers_written": written, "drift": len(service.find_drift(game_type))})
