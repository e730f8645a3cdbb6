"""Game catalog routes."""

from __future__ import annotations

from flask import Blueprint

from lotogen.schemas.stats import GameSchema
from lotogen.services.game_catalog import list_games
from lotogen.utils.responses import ok

games_bp = Blueprint("games", __name__)

_games_schema = GameSchema(many=True)


@games_bp.get("/games")
def get_games():
    return ok(_games_schema.dump(list_games()))
