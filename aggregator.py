# aggregator.py — derived views over the in-memory session list
#
# Every function here is pure and total: empty input gives zeroed / empty
# results, never an exception.
from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Dict, Hashable, Iterable, List, Optional, Sequence, Tuple, TypeVar

from models import GameType, Session

K = TypeVar("K", bound=Hashable)


@dataclass(frozen=True)
class Totals:
    total_profit: float = 0.0
    count: int = 0
    win_rate: float = 0.0        # percent, 0..100
    avg_profit: float = 0.0
    total_buy_ins: float = 0.0
    winning_sessions: int = 0


@dataclass
class GroupStats:
    profit: float = 0.0
    sessions: int = 0


@dataclass(frozen=True)
class SeriesPoint:
    date: dt.date
    profit: float
    cumulative_profit: float
    session_id: str


@dataclass(frozen=True)
class MonthlyStats:
    month_key: str   # "YYYY-MM", sorts chronologically
    label: str       # "Mar 2025"
    profit: float
    sessions: int


# ---------- totals ----------

def totals(sessions: Sequence[Session]) -> Totals:
    count = len(sessions)
    if count == 0:
        return Totals()

    total_profit = round(sum(s.profit for s in sessions), 2)
    wins = sum(1 for s in sessions if s.is_win)
    return Totals(
        total_profit=total_profit,
        count=count,
        win_rate=wins / count * 100.0,
        avg_profit=total_profit / count,
        total_buy_ins=round(sum(s.buy_in for s in sessions), 2),
        winning_sessions=wins,
    )


# ---------- grouping ----------

def _group(sessions: Iterable[Session], key_fn) -> Dict:
    out: Dict = {}
    for s in sessions:
        k = key_fn(s)
        g = out.get(k)
        if g is None:
            g = out[k] = GroupStats()
        g.profit = round(g.profit + s.profit, 2)
        g.sessions += 1
    return out


def group_by_location(sessions: Iterable[Session]) -> Dict[str, GroupStats]:
    return _group(sessions, lambda s: s.location)


def group_by_game_type_and_stakes(sessions: Iterable[Session]) -> Dict[Tuple[GameType, str], GroupStats]:
    return _group(sessions, lambda s: (s.game_type, s.stakes))


def ranked(groups: Dict[K, GroupStats]) -> List[Tuple[K, GroupStats]]:
    """Best first by summed profit. Exact ties keep insertion order (not guaranteed to callers)."""
    return sorted(groups.items(), key=lambda kv: kv[1].profit, reverse=True)


def best_location(sessions: Sequence[Session]) -> Optional[Tuple[str, GroupStats]]:
    r = ranked(group_by_location(sessions))
    return r[0] if r else None


def best_game_type(sessions: Sequence[Session]) -> Optional[Tuple[Tuple[GameType, str], GroupStats]]:
    r = ranked(group_by_game_type_and_stakes(sessions))
    return r[0] if r else None


# ---------- time views ----------

def time_series(sessions: Iterable[Session]) -> List[SeriesPoint]:
    """
    Ascending by date with a running total. The input's display order
    (newest first) does not matter; same-day sessions keep their relative
    order from the oldest end of the list.
    """
    ordered = sorted(reversed(list(sessions)), key=lambda s: s.date)
    out: List[SeriesPoint] = []
    running = 0.0
    for s in ordered:
        running = round(running + s.profit, 2)
        out.append(SeriesPoint(date=s.date, profit=s.profit, cumulative_profit=running, session_id=s.id))
    return out


def monthly(sessions: Iterable[Session]) -> List[MonthlyStats]:
    grouped = _group(sessions, lambda s: (s.date.year, s.date.month))
    out: List[MonthlyStats] = []
    for (year, month) in sorted(grouped):
        g = grouped[(year, month)]
        label = dt.date(year, month, 1).strftime("%b %Y")
        out.append(MonthlyStats(month_key=f"{year:04d}-{month:02d}", label=label, profit=g.profit, sessions=g.sessions))
    return out


def recent(sessions: Sequence[Session], n: int = 5) -> List[Session]:
    return list(sessions[: max(0, n)])


# ---------- filters ----------

RESULT_ALL = "All Results"
RESULT_WINNING = "Winning Sessions"
RESULT_LOSING = "Losing Sessions"
RESULT_BREAK_EVEN = "Break-even"
RESULT_OPTIONS = [RESULT_ALL, RESULT_WINNING, RESULT_LOSING, RESULT_BREAK_EVEN]


def filter_sessions(
    sessions: Iterable[Session],
    game_type: Optional[GameType] = None,
    result: str = RESULT_ALL,
) -> List[Session]:
    """Keeps input order. game_type None means every game type."""
    filtered = []
    for s in sessions:
        if game_type is not None and s.game_type is not game_type:
            continue
        if result == RESULT_WINNING and not s.is_win:
            continue
        if result == RESULT_LOSING and s.profit >= 0:
            continue
        if result == RESULT_BREAK_EVEN and s.profit != 0:
            continue
        filtered.append(s)
    return filtered
