"""Helper utilities for teaching Jinja2 how to format our data.

Templates are the presentation layer. Every page renders timestamps, money
and enum values, so the filters below keep that formatting in one place.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

from fastapi.templating import Jinja2Templates

from ..services.timecalc import parse_iso
from .choices import humanize_status
from .config import settings

_LOCAL_TZ = ZoneInfo(settings.TZ) if settings.TZ else None


def _to_dt(value: Any) -> datetime | None:
    """Convert stored ``...Z`` strings or datetimes into local, timezone-aware datetimes."""

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str) and value:
        dt = parse_iso(value)
        if dt is None:
            return None
    else:
        return None

    if _LOCAL_TZ:
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=_LOCAL_TZ)
        dt = dt.astimezone(_LOCAL_TZ)
    return dt


def _fmt_dt(value: Any, fmt: str = "%Y-%m-%d %I:%M %p") -> str:
    dt = _to_dt(value)
    return dt.strftime(fmt) if dt else ""


def _fmt_date(value: Any, fmt: str = "%Y-%m-%d") -> str:
    dt = _to_dt(value)
    return dt.strftime(fmt) if dt else ""


def _fmt_currency(value: Any) -> str:
    """Maintenance costs: ``$1,234.50``; blank for missing values."""

    if value in (None, ""):
        return ""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return ""
    return f"${number:,.2f}"


def _humanize(value: Any) -> str:
    """``in_progress`` -> ``In progress``."""

    text = humanize_status(str(value) if value is not None else "")
    return text[:1].upper() + text[1:]


def get_templates() -> Jinja2Templates:
    """Create a ``Jinja2Templates`` instance with our standard filters registered."""

    templates = Jinja2Templates(directory=str(settings.TEMPLATES_DIR))
    env = templates.env
    env.filters["fmt_dt"] = _fmt_dt
    env.filters["fmt_date"] = _fmt_date
    env.filters["fmt_currency"] = _fmt_currency
    env.filters["humanize"] = _humanize
    env.globals["app_name"] = settings.APP_NAME
    return templates
