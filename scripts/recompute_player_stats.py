#!/usr/bin/env python3
"""
Rebuild every player's stat counters from the match ledger.

Goals and assists come from goal events; man-of-the-match awards and
matches played come from finished matches.

Usage:
    python scripts/recompute_player_stats.py
    python scripts/recompute_player_stats.py --dry-run
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

# Add src to path so this script can be run directly
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from campustad.db.session import SessionLocal
from campustad.services.registry import recompute_player_stats

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Recompute player stats from matches and goal events.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Compute counters but roll back instead of committing.",
    )
    args = parser.parse_args()

    session = SessionLocal()
    try:
        written = recompute_player_stats(session)
        if args.dry_run:
            session.rollback()
            logger.info("Dry run: %d players would be updated", written)
        else:
            session.commit()
            logger.info("Updated stats for %d players", written)
    except Exception:
        session.rollback()
        logger.exception("Stat recompute failed")
        return 1
    finally:
        session.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
