"""Saved numbers of the signed-in owner."""

from __future__ import annotations

from flask import Blueprint, request

from lotogen.auth import get_request_context
from lotogen.schemas.record import DrawRecordSchema, ListDrawsQuerySchema, dump_page
from lotogen.services import get_record_service
from lotogen.services.record_service import DrawFilter
from lotogen.utils.responses import ok

numbers_bp = Blueprint("numbers", __name__)

_query_schema = ListDrawsQuerySchema()
_record_schema = DrawRecordSchema()


@numbers_bp.get("/numbers")
def list_my_numbers():
    data = _query_schema.load(request.args)
    ctx = get_request_context()

    page = get_record_service().list_draws(
        ctx,
        DrawFilter(
            owner_id=ctx.owner_id,
            game_type=data.get("game_type"),
            limit=int(data["limit"]),
            offset=int(data["offset"]),
        ),
    )
    return ok(dump_page(page, _record_schema))


@numbers_bp.delete("/numbers/<record_id>")
def delete_number(record_id: str):
    get_record_service().soft_delete(get_request_context(), record_id)
    return ok({"id": record_id, "is_deleted": True})


@numbers_bp.delete("/numbers")
def delete_all_numbers():
    deleted = get_record_service().soft_delete_all(get_request_context())
    return ok({"deleted": deleted})
