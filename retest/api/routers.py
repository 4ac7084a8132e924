"""Internal API routers — /status, /state and /decisions endpoints.

No business logic.  Serves the shared state the trading engine pushes
after every cycle.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Query

logger = logging.getLogger("retest")
router = APIRouter()

# ── Shared state (updated by the engine) ─────────────────────────────────

_DEFAULT_STATUS: dict = {
    "mode": "idle",
    "running": False,
    "symbol": None,
    "granularity": None,
    "cycle_count": 0,
    "started_at": None,
    "last_cycle_at": None,
    "last_bar_time": None,
    "last_order_time": None,
    "last_close_all_time": None,
}

_MAX_DECISIONS = 50

_bot_status: dict = {**_DEFAULT_STATUS}
_strategy_state: Optional[dict] = None
_decision_history: list = []


def reset_state() -> None:
    """Restore the shared state to its defaults."""
    global _strategy_state  # noqa: PLW0603
    _bot_status.clear()
    _bot_status.update(_DEFAULT_STATUS)
    _strategy_state = None
    _decision_history.clear()


def update_bot_status(**fields) -> None:
    """Update individual fields of the engine status dict."""
    _bot_status.update(fields)


def update_strategy_state(snapshot: Optional[dict]) -> None:
    """Store the latest strategy snapshot for the /state endpoint."""
    global _strategy_state  # noqa: PLW0603
    _strategy_state = snapshot


def record_decision(decision: dict) -> None:
    """Append one engine decision to the history (max 50 entries)."""
    _decision_history.append(decision)
    if len(_decision_history) > _MAX_DECISIONS:
        del _decision_history[0]


# ── Endpoints ────────────────────────────────────────────────────────────


@router.get("/status")
async def get_status():
    """Return the engine status."""
    return dict(_bot_status)


@router.get("/state")
async def get_state():
    """Return the current day's strategy state and latest checks."""
    return {"state": _strategy_state}


@router.get("/decisions")
async def get_decisions(
    limit: int = Query(default=20, ge=1, le=_MAX_DECISIONS),
):
    """Return recent engine decisions, newest first."""
    recent = _decision_history[-limit:]
    recent.reverse()
    return {"decisions": recent}
