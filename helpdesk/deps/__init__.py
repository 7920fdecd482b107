"""Beginner-friendly overview for this module.

WHAT: Groups the FastAPI dependencies that work out who is calling.
WHEN: Pulled in by routers through ``Depends(...)`` on every protected route.
WHY: Pages and API endpoints share one notion of "the acting user".
HOW: ``ui_auth`` reads the signed session cookie, ``auth`` adds bearer JWTs
and the role guards on top of it.

File: helpdesk/deps/__init__.py
"""
