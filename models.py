# models.py — session + bankroll records, row codecs, form validation
#
# Pure data. No Streamlit, no Supabase calls.
from __future__ import annotations

import datetime as dt
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from errors import ValidationError


class GameType(str, Enum):
    CASH = "cash"
    TOURNAMENT = "tournament"

    @property
    def label(self) -> str:
        if self is GameType.CASH:
            return "Cash Game"
        return "Tournament"

    @property
    def short_label(self) -> str:
        if self is GameType.CASH:
            return "Cash"
        return "Tournament"

    @classmethod
    def parse(cls, value: Any) -> "GameType":
        if isinstance(value, GameType):
            return value
        try:
            return cls(str(value or "").strip().lower())
        except ValueError:
            raise ValidationError(f"Unknown game type: {value!r}") from None


class Mode(str, Enum):
    ANONYMOUS = "anonymous"
    GUEST = "guest"
    AUTHENTICATED = "authenticated"


# ---------- helpers ----------

def _money(x: Any, default: float = 0.0) -> float:
    if x is None or x == "":
        return default
    try:
        return round(float(x), 2)
    except (TypeError, ValueError):
        return default


def parse_date(value: Any) -> Optional[dt.date]:
    """
    Accepts a date, a datetime, 'YYYY-MM-DD' or a full ISO timestamp
    ('2025-03-01T00:00:00Z' comes back from some PostgREST setups).
    """
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    s = value.strip()
    try:
        return dt.date.fromisoformat(s[:10])
    except ValueError:
        return None


def new_local_id() -> str:
    return uuid.uuid4().hex


# ---------- Session ----------

@dataclass(frozen=True)
class Session:
    """
    One recorded outing. Immutable once built.

    profit is derived in __post_init__ and cannot be passed in, so it is
    always cash_out - buy_in.
    """
    id: str
    date: dt.date
    game_type: GameType
    stakes: str
    location: str
    buy_in: float
    cash_out: float
    notes: str = ""
    profit: float = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "profit", round(self.cash_out - self.buy_in, 2))

    @property
    def is_win(self) -> bool:
        return self.profit > 0

    # --- gateway rows ---
    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Session":
        d = parse_date(row.get("date"))
        if d is None:
            raise ValueError(f"session row {row.get('id')!r} has no usable date")
        return cls(
            id=str(row.get("id") or ""),
            date=d,
            game_type=GameType.parse(row.get("game_type")),
            stakes=str(row.get("stakes") or ""),
            location=str(row.get("location") or ""),
            buy_in=_money(row.get("buy_in")),
            cash_out=_money(row.get("cash_out")),
            notes=str(row.get("notes") or ""),
        )

    def to_row(self, user_id: str) -> Dict[str, Any]:
        # id is assigned by the database
        return {
            "user_id": user_id,
            "date": self.date.isoformat(),
            "game_type": self.game_type.value,
            "stakes": self.stakes,
            "location": self.location,
            "buy_in": self.buy_in,
            "cash_out": self.cash_out,
            "profit": self.profit,
            "notes": self.notes,
        }

    # --- guest store ---
    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "date": self.date.isoformat(),
            "game_type": self.game_type.value,
            "stakes": self.stakes,
            "location": self.location,
            "buy_in": self.buy_in,
            "cash_out": self.cash_out,
            "profit": self.profit,
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Session":
        return cls.from_row(data)


@dataclass(frozen=True)
class SessionForm:
    """Validated session-form input, before an id is assigned."""
    date: dt.date
    game_type: GameType
    stakes: str
    location: str
    buy_in: float
    cash_out: float
    notes: str = ""

    def to_session(self, session_id: Optional[str] = None) -> Session:
        return Session(
            id=session_id or new_local_id(),
            date=self.date,
            game_type=self.game_type,
            stakes=self.stakes,
            location=self.location,
            buy_in=self.buy_in,
            cash_out=self.cash_out,
            notes=self.notes,
        )


def _required_amount(value: Any, label: str) -> float:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError("Please fill in all required fields")
    try:
        amount = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{label} must be a number") from None
    if amount != amount or amount in (float("inf"), float("-inf")):
        raise ValidationError(f"{label} must be a number")
    if amount < 0:
        raise ValidationError(f"{label} cannot be negative")
    return round(amount, 2)


def validate_session_form(
    date: Any,
    game_type: Any,
    stakes: Any,
    location: Any,
    buy_in: Any,
    cash_out: Any,
    notes: Any = "",
) -> SessionForm:
    """Raise ValidationError for anything the form should have caught."""
    stakes = str(stakes or "").strip()
    location = str(location or "").strip()
    if not stakes or not location:
        raise ValidationError("Please fill in all required fields")

    d = parse_date(date)
    if d is None:
        raise ValidationError("Please enter a valid date")

    return SessionForm(
        date=d,
        game_type=GameType.parse(game_type),
        stakes=stakes,
        location=location,
        buy_in=_required_amount(buy_in, "Buy in"),
        cash_out=_required_amount(cash_out, "Cash out"),
        notes=str(notes or "").strip(),
    )


# ---------- Bankroll ----------

BANKROLL_INVALID_MSG = "Please enter valid amounts. Goal must be greater than starting amount."


@dataclass(frozen=True)
class BankrollSnapshot:
    starting_amount: float
    goal_amount: float
    current_amount: float

    def to_dict(self) -> Dict[str, Any]:
        # current is re-derived on load, never trusted from storage
        return {
            "starting_amount": self.starting_amount,
            "goal_amount": self.goal_amount,
        }


def validate_bankroll_setup(starting: Any, goal: Any) -> tuple[float, float]:
    try:
        s = float(starting)
        g = float(goal)
    except (TypeError, ValueError):
        raise ValidationError(BANKROLL_INVALID_MSG) from None
    if s != s or g != g or s <= 0 or g <= s:
        raise ValidationError(BANKROLL_INVALID_MSG)
    return round(s, 2), round(g, 2)


# ---------- Credentials ----------

MIN_PASSWORD_LEN = 6


def validate_credentials(email: Any, password: Any, confirm: Any = None, *, sign_up: bool = False) -> tuple[str, str]:
    email = str(email or "").strip().lower()
    password = str(password or "")
    if not email or not password:
        raise ValidationError("Please enter both email and password.")
    if sign_up and password != str(confirm or ""):
        raise ValidationError("Passwords don't match")
    if len(password) < MIN_PASSWORD_LEN:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LEN} characters")
    return email, password
