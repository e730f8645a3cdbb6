"""Statistics routes."""

from __future__ import annotations

from flask import Blueprint, request

from lotogen.auth import get_request_context
from lotogen.schemas.stats import (
    FrequencyAnalysisSchema,
    FrequencyQuerySchema,
    HotColdQuerySchema,
    HotColdSchema,
    UserStatsSchema,
)
from lotogen.services import get_record_service, get_statistics_service
from lotogen.utils.responses import ok

stats_bp = Blueprint("stats", __name__)

_hot_cold_query = HotColdQuerySchema()
_frequency_query = FrequencyQuerySchema()
_hot_cold_schema = HotColdSchema()
_frequency_schema = FrequencyAnalysisSchema()
_user_stats_schema = UserStatsSchema()


@stats_bp.get("/stats/me")
def my_stats():
    stats = get_record_service().compute_user_stats(get_request_context())
    return ok(_user_stats_schema.dump(stats))


@stats_bp.get("/stats/<game_type>/hot-cold")
def hot_cold(game_type: str):
    """Hot and cold numbers.

    Query params:
    - limit: how many numbers per list (default 5)
    - mas: use the Más number statistics (Leidsa only)
    """

    data = _hot_cold_query.load(request.args)
    result = get_statistics_service().get_hot_cold_numbers(
        game_type,
        limit=int(data["limit"]),
        secondary=bool(data["mas"]),
    )
    return ok(_hot_cold_schema.dump(result))


@stats_bp.get("/stats/<game_type>/frequency")
def frequency(game_type: str):
    data = _frequency_query.load(request.args)
    result = get_statistics_service().analyze_frequency(game_type, secondary=bool(data["mas"]))
    return ok(_frequency_schema.dump(result))
