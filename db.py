# db.py — Supabase gateway: GoTrue auth + sessions + profiles
#
# Tables (RLS: a user only sees their own rows):
#   sessions(id, user_id, date, game_type, stakes, location, buy_in, cash_out, profit, notes)
#   profiles(id, starting_bankroll, bankroll_goal, ...)
from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from errors import GatewayError, NotConfiguredError
from models import Session, validate_bankroll_setup
from settings import supabase_anon_key, supabase_url
from supabase_client import get_supabase, reset_supabase_client

# PostgREST "0 rows" code for .single()
_NO_ROWS_CODE = "PGRST116"


def _sid(x: Any) -> str:
    """Safe id normalize (uuid.UUID -> str, None -> '')."""
    if x is None:
        return ""
    return str(x)


def _execute_with_retry(q, *, tries: int = 3, base_sleep: float = 0.2):
    """
    Retry wrapper for transient PostgREST/httpx read/connect hiccups (common on Streamlit Cloud).
    q must be a PostgREST query object that supports .execute().
    """
    last_err = None
    for attempt in range(tries):
        try:
            return q.execute()
        except (httpx.ReadError, httpx.ConnectError, httpx.TimeoutException) as e:
            last_err = e
            time.sleep(base_sleep * (2 ** attempt))  # 0.2, 0.4, 0.8
    raise last_err  # bubble after retries


def _error_code(e: Exception) -> str:
    code = getattr(e, "code", None)
    if code is None and e.args and isinstance(e.args[0], dict):
        code = e.args[0].get("code")
    return str(code or "")


def _error_message(e: Exception) -> str:
    msg = getattr(e, "message", None)
    if msg:
        return str(msg)
    if e.args and isinstance(e.args[0], dict):
        return str(e.args[0].get("message") or e.args[0])
    return str(e) or e.__class__.__name__


# ---------- GoTrue REST ----------

@dataclass(frozen=True)
class AuthResult:
    user_id: str
    email: str
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None

    @property
    def has_session(self) -> bool:
        return bool(self.access_token)


def _gotrue_headers() -> Dict[str, str]:
    key = supabase_anon_key().strip()
    return {
        "apikey": key,
        "Authorization": f"Bearer {key}",
        "Content-Type": "application/json",
    }


def _gotrue_endpoint(path: str) -> str:
    url = supabase_url().rstrip("/")
    if not url or not supabase_anon_key().strip():
        raise GatewayError("Missing SUPABASE_URL or SUPABASE_ANON_KEY in secrets.")
    return f"{url}/auth/v1/{path}"


def _gotrue_post(path: str, payload: Dict[str, Any], what: str) -> Dict[str, Any]:
    endpoint = _gotrue_endpoint(path)
    try:
        r = httpx.post(endpoint, headers=_gotrue_headers(), json=payload, timeout=20.0)
    except httpx.HTTPError as e:
        raise GatewayError(f"{what} failed: {e}") from e

    if r.status_code >= 400:
        error_detail = r.text
        try:
            error_json = r.json()
            error_detail = (
                error_json.get("error_description")
                or error_json.get("msg")
                or error_json.get("message")
                or r.text
            )
        except ValueError:
            pass
        raise GatewayError(f"{what} failed: {error_detail}")

    return r.json()


def _auth_result(data: Dict[str, Any], fallback_email: str) -> AuthResult:
    # signup without auto-confirm returns the bare user object
    user = data.get("user") if isinstance(data.get("user"), dict) else data
    user_id = _sid(user.get("id") or user.get("sub"))
    if not user_id:
        raise GatewayError("Authentication error: Could not determine user ID.")
    return AuthResult(
        user_id=user_id,
        email=str(user.get("email") or fallback_email).strip().lower(),
        access_token=data.get("access_token"),
        refresh_token=data.get("refresh_token"),
    )


def gotrue_password_login(email: str, password: str) -> AuthResult:
    """Direct REST call to Supabase GoTrue for password auth."""
    data = _gotrue_post("token?grant_type=password", {"email": email, "password": password}, "Login")
    res = _auth_result(data, email)
    if not res.access_token:
        raise GatewayError("Login failed: No access token received.")
    return res


def gotrue_sign_up(email: str, password: str) -> AuthResult:
    data = _gotrue_post("signup", {"email": email, "password": password}, "Sign up")
    return _auth_result(data, email)


# ---------- Gateway ----------

class SupabaseGateway:
    """
    Remote half of the app. Every failure leaves as GatewayError
    (or NotConfiguredError for a profile with no bankroll yet).
    """

    def __init__(self, sb=None) -> None:
        self._sb = sb

    @property
    def sb(self):
        return self._sb if self._sb is not None else get_supabase()

    # ---------- AUTH ----------

    def _bind(self, res: AuthResult) -> None:
        if not res.access_token:
            return
        # fresh client per identity
        if self._sb is None:
            reset_supabase_client()
        try:
            self.sb.auth.set_session(res.access_token, res.refresh_token or "")
        except Exception as e:
            raise GatewayError(f"Could not bind session: {_error_message(e)}") from e

    def sign_in(self, email: str, password: str) -> AuthResult:
        res = gotrue_password_login(email, password)
        self._bind(res)
        return res

    def sign_up(self, email: str, password: str) -> AuthResult:
        res = gotrue_sign_up(email, password)
        self._bind(res)
        return res

    def sign_out(self) -> None:
        try:
            self.sb.auth.sign_out()
        except Exception as e:
            raise GatewayError(f"Sign out failed: {_error_message(e)}") from e
        finally:
            if self._sb is None:
                reset_supabase_client()

    # ---------- SESSIONS ----------

    def fetch_sessions(self, user_id: str) -> List[Session]:
        """Newest first."""
        user_id = _sid(user_id)
        if not user_id:
            return []

        q = (
            self.sb.table("sessions")
            .select("*")
            .eq("user_id", user_id)
            .order("date", desc=True)
        )
        try:
            res = _execute_with_retry(q)
        except Exception as e:
            raise GatewayError(_error_message(e)) from e

        out: List[Session] = []
        for row in res.data or []:
            try:
                out.append(Session.from_row(row))
            except Exception as e:
                print(f"[db.fetch_sessions] skipping bad row id={row.get('id')!r}: {e!r}")
        return out

    def insert_session(self, user_id: str, session: Session) -> Session:
        """Insert and return the stored row (with its database id)."""
        user_id = _sid(user_id)
        if not user_id:
            raise GatewayError("Missing user id. Refusing to insert an unowned session.")

        try:
            insert_res = self.sb.table("sessions").insert(session.to_row(user_id)).execute()
        except Exception as e:
            raise GatewayError(_error_message(e)) from e

        if not insert_res.data:
            raise GatewayError("Failed to insert session row in 'sessions' table.")
        return Session.from_row(insert_res.data[0])

    # ---------- PROFILES (bankroll) ----------

    def load_bankroll(self, user_id: str) -> tuple[float, float]:
        """
        Returns (starting_bankroll, bankroll_goal).
        Raises NotConfiguredError when the profile row or either field is missing.
        """
        user_id = _sid(user_id)
        if not user_id:
            raise GatewayError("Missing user id.")
        q = (
            self.sb.table("profiles")
            .select("starting_bankroll, bankroll_goal")
            .eq("id", user_id)
            .limit(1)
        )
        try:
            res = _execute_with_retry(q)
        except Exception as e:
            if _error_code(e) == _NO_ROWS_CODE:
                raise NotConfiguredError("No profile row yet.") from e
            raise GatewayError(_error_message(e)) from e

        rows = getattr(res, "data", None) or []
        if not rows:
            raise NotConfiguredError("No profile row yet.")

        row = rows[0] or {}
        starting = row.get("starting_bankroll")
        goal = row.get("bankroll_goal")
        if not starting or not goal:
            raise NotConfiguredError("Bankroll not set up yet.")
        return float(starting), float(goal)

    def update_bankroll(self, user_id: str, starting: float, goal: float) -> None:
        user_id = _sid(user_id)
        if not user_id:
            raise GatewayError("Missing user id. Refusing to update an unowned profile.")
        starting, goal = validate_bankroll_setup(starting, goal)

        payload = {
            "starting_bankroll": starting,
            "bankroll_goal": goal,
        }
        try:
            res = self.sb.table("profiles").update(payload).eq("id", user_id).execute()
            if not res.data:
                # no profile row yet (trigger not installed) -> create it
                self.sb.table("profiles").upsert({"id": user_id, **payload}, on_conflict="id").execute()
        except Exception as e:
            raise GatewayError(_error_message(e)) from e
