"""Recompute number statistics from the saved (non-deleted) draws.

Counters are only incremented when a draw is saved, so soft deletes leave them
above the real count. This resets every scope of the given games.

Usage:
  python scripts/rebuild_statistics.py            # all games
  python scripts/rebuild_statistics.py leidsa kino
  python scripts/rebuild_statistics.py --check    # report drift only
"""

from __future__ import annotations

import argparse
import logging
import pathlib
import sys

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT))

from lotogen import create_app  # noqa: E402
from lotogen.auth import RequestContext  # noqa: E402
from lotogen.services import get_statistics_service  # noqa: E402
from lotogen.services.game_catalog import GAME_TYPES  # noqa: E402

logger = logging.getLogger("rebuild_statistics")

_MAINTENANCE = RequestContext(owner_id="maintenance-script", is_admin=True)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("games", nargs="*", help=f"game types (default: {' '.join(GAME_TYPES)})")
    parser.add_argument("--check", action="store_true", help="only report drift, do not write")
    args = parser.parse_args(argv)

    app = create_app()
    with app.app_context():
        service = get_statistics_service()
        drifted = 0
        for game in args.games or GAME_TYPES:
            drift = service.find_drift(game)
            drifted += len(drift)
            for entry in drift:
                logger.info("%s #%d stored=%d actual=%d", entry.scope, entry.number, entry.stored, entry.actual)
            if not args.check and drift:
                written = service.rebuild_statistics(_MAINTENANCE, game)
                logger.info("%s: rebuilt %d counters", game, written)

    logger.info("Numbers with drift: %d", drifted)
    return 1 if args.check and drifted else 0


if __name__ == "__main__":
    raise SystemExit(main())
