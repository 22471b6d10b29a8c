"""
Campustad - Inter-College Football Tournament Tracker

Tracks a university football tournament from group stage to final:
rosters, fixtures, live scores and goal events, standings, a fan
prediction game and an admin news feed.

Main components:
- db: SQLAlchemy models and session management
- standings: Group tables, knockout rounds and leaderboards (pure functions)
- services: Registry, match ledger, predictions, news and the admin dispatch table
- web: FastAPI app, identity gate and Jinja2 pages
"""

__version__ = "1.0.0"
