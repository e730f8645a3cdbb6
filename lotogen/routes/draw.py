"""Generation routes (controllers). No business logic here."""

from __future__ import annotations

from flask import Blueprint, request

from lotogen.auth import get_request_context
from lotogen.schemas.draw import DrawSchema, GenerateRequestSchema
from lotogen.schemas.record import DrawRecordSchema
from lotogen.services import get_record_service
from lotogen.services.draw_service import DrawOptions
from lotogen.utils.responses import ok

draw_bp = Blueprint("draw", __name__)

_generate_schema = GenerateRequestSchema()
_draw_schema = DrawSchema()
_record_schema = DrawRecordSchema()


def _options(data: dict) -> DrawOptions:
    return DrawOptions(
        include_secondary=bool(data.get("include_mas")),
        secondary_only=bool(data.get("generate_mas_only")),
    )


@draw_bp.post("/draw/demo")
def generate_demo():
    """Generate without saving. Available to anonymous visitors."""

    payload = request.get_json(silent=True) or {}
    data = _generate_schema.load(payload)

    draws = get_record_service().generate_demo(
        str(data["game_type"]),
        _options(data),
        quantity=int(data["quantity"]),
    )
    return ok(
        {
            "game_type": data["game_type"],
            "quantity": len(draws),
            "demo": True,
            "numbers": _draw_schema.dump(draws, many=True),
        }
    )


@draw_bp.post("/numbers")
def generate_and_save():
    """Generate and save combinations to the caller's account."""

    payload = request.get_json(silent=True) or {}
    data = _generate_schema.load(payload)

    results = get_record_service().generate_and_save(
        get_request_context(),
        str(data["game_type"]),
        _options(data),
        quantity=int(data["quantity"]),
    )
    warnings = [
        {"code": r.statistics_error.code, "message": r.statistics_error.message, "details": r.statistics_error.details}
        for r in results
        if r.statistics_error is not None
    ]
    return ok(
        {
            "game_type": data["game_type"],
            "quantity": len(results),
            "numbers": _record_schema.dump([r.record for r in results], many=True),
        },
        status_code=201,
        warnings=warnings,
    )
