"""
Campustad services: the tournament's write paths and read models.

Modules:
- registry: teams, groups, roster players, stats, profile approval
- ledger: matches and goal events
- predictions: fan score guesses and their leaderboard
- news: admin news feed, attachments and read markers
- snapshot: fresh reads fed to the standings engine
- admin_actions: the privileged {type, payload} dispatch table

Usage:
    from campustad.services import registry, ledger

    with get_session() as session:
        team = registry.create_team(session, "Medicine FC")
"""

from campustad.services import ledger, news, predictions, registry, snapshot
from campustad.services.admin_actions import ACTIONS, run_admin_action

__all__ = [
    "ledger",
    "news",
    "predictions",
    "registry",
    "snapshot",
    "ACTIONS",
    "run_admin_action",
]
