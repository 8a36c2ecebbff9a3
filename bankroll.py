# bankroll.py — bankroll snapshot math (pure, no I/O)
from __future__ import annotations

from dataclasses import replace
from typing import Any, Iterable, Optional

from models import BankrollSnapshot, Session, validate_bankroll_setup


def derive_current(starting: float, sessions: Iterable[Session]) -> float:
    """Current is always starting + sum of profits; never stored on its own."""
    return round(float(starting) + sum(s.profit for s in sessions), 2)


def snapshot_from(starting: float, goal: float, sessions: Iterable[Session]) -> BankrollSnapshot:
    return BankrollSnapshot(
        starting_amount=float(starting),
        goal_amount=float(goal),
        current_amount=derive_current(starting, sessions),
    )


def setup_bankroll(starting: Any, goal: Any, sessions: Iterable[Session] = ()) -> BankrollSnapshot:
    """Validate a setup/update form and build the snapshot. Raises ValidationError."""
    s, g = validate_bankroll_setup(starting, goal)
    return snapshot_from(s, g, sessions)


def apply_profit_delta(snapshot: BankrollSnapshot, profit: float) -> BankrollSnapshot:
    return replace(snapshot, current_amount=round(snapshot.current_amount + float(profit), 2))


def progress_percentage(snapshot: Optional[BankrollSnapshot]) -> float:
    """Share of the way from starting to goal, clamped to [0, 100]."""
    if snapshot is None:
        return 0.0
    span = snapshot.goal_amount - snapshot.starting_amount
    if span <= 0:
        return 0.0
    pct = (snapshot.current_amount - snapshot.starting_amount) / span * 100.0
    return min(100.0, max(0.0, pct))
