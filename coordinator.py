# coordinator.py — where data lives right now, and every state transition
#
# AppState is an explicit, immutable struct. Each operation takes the current
# state and returns the next one; nothing else mutates it. The coordinator
# itself holds no per-user state, only its two collaborators:
#   - gateway:     db.SupabaseGateway (or a fake in tests)
#   - guest_store: guest_store.GuestStore
#
# This module is pure logic — no Streamlit.
from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from bankroll import apply_profit_delta, setup_bankroll, snapshot_from
from errors import (
    DataLoadError,
    GatewayError,
    InvalidTransitionError,
    MigrationError,
    NotConfiguredError,
    StorageError,
)
from models import BankrollSnapshot, Mode, Session, SessionForm, validate_credentials


class Phase(str, Enum):
    ANONYMOUS = "anonymous"
    GUEST = "guest"
    AUTHENTICATED = "authenticated"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


class Event(str, Enum):
    ENTER_GUEST = "enter_guest"
    AUTHENTICATE = "authenticate"
    LOAD = "load"
    LOADED = "loaded"
    LOAD_FAILED = "load_failed"
    SIGN_OUT = "sign_out"


TRANSITIONS: Dict[Tuple[Phase, Event], Phase] = {
    (Phase.ANONYMOUS, Event.ENTER_GUEST): Phase.GUEST,
    (Phase.ANONYMOUS, Event.AUTHENTICATE): Phase.AUTHENTICATED,
    # guest signing up / in
    (Phase.GUEST, Event.AUTHENTICATE): Phase.AUTHENTICATED,
    (Phase.READY, Event.AUTHENTICATE): Phase.AUTHENTICATED,
    (Phase.ERROR, Event.AUTHENTICATE): Phase.AUTHENTICATED,

    (Phase.GUEST, Event.LOAD): Phase.LOADING,
    (Phase.AUTHENTICATED, Event.LOAD): Phase.LOADING,
    (Phase.READY, Event.LOAD): Phase.LOADING,
    (Phase.ERROR, Event.LOAD): Phase.LOADING,

    (Phase.LOADING, Event.LOADED): Phase.READY,
    (Phase.LOADING, Event.LOAD_FAILED): Phase.ERROR,
}
for _p in Phase:
    TRANSITIONS[(_p, Event.SIGN_OUT)] = Phase.ANONYMOUS


@dataclass(frozen=True)
class AppState:
    phase: Phase = Phase.ANONYMOUS
    mode: Mode = Mode.ANONYMOUS
    user_id: Optional[str] = None
    email: Optional[str] = None
    sessions: Tuple[Session, ...] = ()      # newest first
    bankroll: Optional[BankrollSnapshot] = None
    error: Optional[str] = None
    # guest data still waiting to move to the account
    pending_migration: bool = False

    @property
    def is_guest(self) -> bool:
        return self.mode is Mode.GUEST

    @property
    def is_authenticated(self) -> bool:
        return self.mode is Mode.AUTHENTICATED

    @property
    def needs_bankroll_setup(self) -> bool:
        return self.phase is Phase.READY and self.bankroll is None

    def transition(self, event: Event, **changes: Any) -> "AppState":
        nxt = TRANSITIONS.get((self.phase, event))
        if nxt is None:
            raise InvalidTransitionError(f"{event.value} is not allowed from {self.phase.value}")
        if self.phase is Phase.READY and event is Event.AUTHENTICATE and self.mode is not Mode.GUEST:
            raise InvalidTransitionError("already signed in")
        return replace(self, phase=nxt, **changes)


class ModeCoordinator:
    def __init__(self, gateway, guest_store) -> None:
        self.gateway = gateway
        self.guest_store = guest_store

    # ---------- mode entry ----------

    def enter_guest_mode(self, state: AppState) -> AppState:
        """No network. Everything after this goes to the guest store."""
        return state.transition(Event.ENTER_GUEST, mode=Mode.GUEST, user_id=None, email=None, error=None)

    def sign_in(self, state: AppState, email: str, password: str) -> AppState:
        """
        Guest data moves only when a sign-up on this device is waiting for
        its first sign-in. Signing in to an existing account from guest mode
        leaves the guest data where it is.
        """
        email, password = validate_credentials(email, password)
        res = self.gateway.sign_in(email, password)
        migrate = state.pending_migration and self.guest_store.has_data()
        return self._on_authenticated(state, res, migrate)

    def sign_up(self, state: AppState, email: str, password: str, confirm: str) -> AppState:
        """
        With email confirmation on, GoTrue returns no session: we stay where
        we are (guest data untouched) and the caller tells the user to confirm.
        """
        email, password = validate_credentials(email, password, confirm, sign_up=True)
        res = self.gateway.sign_up(email, password)
        migrate = state.is_guest and self.guest_store.has_data()
        if not res.has_session:
            return replace(state, pending_migration=migrate, error=None)
        return self._on_authenticated(state, res, migrate)

    def _on_authenticated(self, state: AppState, res, migrate: bool) -> AppState:
        nxt = state.transition(
            Event.AUTHENTICATE,
            mode=Mode.AUTHENTICATED,
            user_id=res.user_id,
            email=res.email,
            sessions=(),
            bankroll=None,
            error=None,
            pending_migration=False,
        )
        if migrate:
            return self.migrate_guest_data_to_account(nxt, res.user_id)
        try:
            return self.load_active_data(nxt)
        except DataLoadError as e:
            # signed in either way; the UI shows state.error with a retry
            return self.fail_load(nxt, e)

    # ---------- loading ----------

    def load_active_data(self, state: AppState) -> AppState:
        """
        Authenticated: sessions (date desc) + profile bankroll from Supabase.
        Guest: both from the guest store; missing keys are an empty state.
        Current amount is re-derived from the session list on both paths.
        Raises DataLoadError; call fail_load() to record the ERROR phase.
        """
        loading = state.transition(Event.LOAD, error=None)

        if loading.is_guest:
            try:
                sessions = self.guest_store.load_sessions()
                bankroll = self.guest_store.load_bankroll(sessions)
            except StorageError as e:
                print(f"[coordinator.load_active_data] guest store: {e!r}")
                raise DataLoadError(f"Error loading data: {e}") from e
        elif loading.is_authenticated:
            try:
                sessions = self.gateway.fetch_sessions(loading.user_id)
                try:
                    starting, goal = self.gateway.load_bankroll(loading.user_id)
                    bankroll = snapshot_from(starting, goal, sessions)
                except NotConfiguredError:
                    bankroll = None
            except GatewayError as e:
                print(f"[coordinator.load_active_data] user={loading.user_id}: {e!r}")
                raise DataLoadError(f"Error loading data: {e}") from e
        else:
            raise InvalidTransitionError("nothing to load while signed out")

        return loading.transition(Event.LOADED, sessions=tuple(sessions), bankroll=bankroll)

    def fail_load(self, state: AppState, err: Exception) -> AppState:
        if state.phase is not Phase.LOADING:
            state = state.transition(Event.LOAD)
        return state.transition(Event.LOAD_FAILED, error=str(err))

    # ---------- writes ----------

    def add_session(self, state: AppState, form: SessionForm) -> AppState:
        """
        Persist first; only on success is the record prepended and the
        profit delta applied (exactly once).
        """
        if state.phase is not Phase.READY:
            raise InvalidTransitionError("sessions can only be added once data is loaded")

        if state.is_guest:
            session = form.to_session()
            self.guest_store.add_session(session)
        else:
            session = self.gateway.insert_session(state.user_id, form.to_session())

        bankroll = state.bankroll
        if bankroll is not None:
            bankroll = apply_profit_delta(bankroll, session.profit)
        return replace(state, sessions=(session,) + state.sessions, bankroll=bankroll, error=None)

    def setup_bankroll(self, state: AppState, starting: Any, goal: Any) -> AppState:
        """Create or replace starting/goal. Current is recomputed from sessions."""
        if state.phase is not Phase.READY:
            raise InvalidTransitionError("bankroll can only be set once data is loaded")

        snapshot = setup_bankroll(starting, goal, state.sessions)
        if state.is_guest:
            self.guest_store.save_bankroll(snapshot)
        else:
            self.gateway.update_bankroll(state.user_id, snapshot.starting_amount, snapshot.goal_amount)
        return replace(state, bankroll=snapshot, error=None)

    # ---------- migration ----------

    def migrate_guest_data_to_account(self, state: AppState, user_id: str) -> AppState:
        """
        Copy every guest session (oldest first) and, when the account has no
        bankroll yet, the guest bankroll; then clear the guest store and reload
        from Supabase.

        Sequential, no transaction: if an insert fails, rows already inserted
        stay remote, the guest store is left intact and MigrationError is
        raised. Running it again re-inserts everything, so a retry after a
        partial failure duplicates the rows that made it the first time.
        """
        if not state.is_authenticated or state.user_id != user_id:
            raise InvalidTransitionError("migration needs the freshly authenticated account")

        try:
            sessions = self.guest_store.load_sessions()
            bankroll = self.guest_store.load_bankroll(sessions)
        except StorageError as e:
            raise MigrationError(
                f"Could not read guest data: {e}",
                state=replace(state, pending_migration=True),
            ) from e
        total = len(sessions)
        migrated = 0

        for s in reversed(sessions):
            try:
                self.gateway.insert_session(user_id, s)
            except GatewayError as e:
                print(f"[coordinator.migrate] stopped at {migrated}/{total} for user={user_id}: {e!r}")
                raise MigrationError(
                    f"Moved {migrated} of {total} guest sessions before an error: {e}",
                    migrated=migrated,
                    total=total,
                    state=replace(state, pending_migration=True),
                ) from e
            migrated += 1

        if bankroll is not None:
            try:
                # an account that already has a bankroll keeps it
                if not self._account_has_bankroll(user_id):
                    self.gateway.update_bankroll(user_id, bankroll.starting_amount, bankroll.goal_amount)
            except GatewayError as e:
                print(f"[coordinator.migrate] bankroll copy failed for user={user_id}: {e!r}")
                raise MigrationError(
                    f"Sessions moved, but the bankroll could not be saved: {e}",
                    migrated=migrated,
                    total=total,
                    state=replace(state, pending_migration=True),
                ) from e

        try:
            self.guest_store.clear()
        except StorageError as e:
            # everything is remote already; discarding is the only safe follow-up
            raise MigrationError(
                f"Guest data was copied but could not be removed from this device: {e}",
                migrated=migrated,
                total=total,
                state=replace(state, pending_migration=True),
            ) from e
        return self._load_after_migration(replace(state, pending_migration=False))

    def _account_has_bankroll(self, user_id: str) -> bool:
        try:
            self.gateway.load_bankroll(user_id)
        except NotConfiguredError:
            return False
        return True

    def _load_after_migration(self, done: AppState) -> AppState:
        # nothing is left to migrate, so a failed reload is a plain load error
        try:
            return self.load_active_data(done)
        except DataLoadError as e:
            return self.fail_load(done, e)

    def abandon_migration(self, state: AppState) -> AppState:
        """User gave up on a failed migration: drop the guest copies and load the account."""
        if not state.is_authenticated:
            raise InvalidTransitionError("no account to continue with")
        self.guest_store.clear()
        return self._load_after_migration(replace(state, pending_migration=False))

    # ---------- sign out ----------

    def sign_out(self, state: AppState) -> AppState:
        """
        Local state is always cleared. A failed remote sign-out is logged;
        the guest store is left alone (it belongs to the device).
        """
        if state.is_authenticated:
            try:
                self.gateway.sign_out()
            except GatewayError as e:
                print(f"[coordinator.sign_out] remote sign out failed: {e!r}")
        return state.transition(
            Event.SIGN_OUT,
            mode=Mode.ANONYMOUS,
            user_id=None,
            email=None,
            sessions=(),
            bankroll=None,
            error=None,
            pending_migration=False,
        )
