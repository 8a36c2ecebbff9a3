#!/usr/bin/env python3
"""
Tests for the mode coordinator: guest/account transitions, loading,
writes and guest -> account migration.

The Supabase gateway is replaced by FakeGateway; the guest store runs on
the in-memory backend.

Run with: python run_tests.py
"""

import unittest

from coordinator import AppState, Event, ModeCoordinator, Phase, TRANSITIONS
from db import AuthResult
from errors import (
    DataLoadError,
    GatewayError,
    InvalidTransitionError,
    MigrationError,
    NotConfiguredError,
    ValidationError,
)
from guest_store import GUEST_BANKROLL_KEY, GUEST_SESSIONS_KEY, GuestStore, MemoryKeyValueStore, new_guest_id
from models import Mode, Session, validate_session_form


class FakeGateway:
    """In-memory stand-in for db.SupabaseGateway."""

    def __init__(self):
        self.rows = []              # (user_id, Session) in insert order
        self.profiles = {}          # user_id -> (starting, goal)
        self.inserted = []          # Sessions passed to insert_session
        self.fail_insert_after = None
        self.fail_fetch = False
        self.fail_bankroll_update = False
        self.fail_sign_out = False
        self.sign_up_session = True
        self.signed_out = 0
        self._next_id = 1

    def _auth(self, email, with_session=True):
        return AuthResult(
            user_id="user-1",
            email=email,
            access_token="tok" if with_session else None,
            refresh_token="ref" if with_session else None,
        )

    def sign_in(self, email, password):
        if password == "wrong-password":
            raise GatewayError("Login failed: Invalid login credentials")
        return self._auth(email)

    def sign_up(self, email, password):
        return self._auth(email, self.sign_up_session)

    def sign_out(self):
        self.signed_out += 1
        if self.fail_sign_out:
            raise GatewayError("Sign out failed: network")

    def fetch_sessions(self, user_id):
        if self.fail_fetch:
            raise GatewayError("connection reset")
        mine = [s for uid, s in self.rows if uid == user_id]
        return sorted(mine, key=lambda s: s.date, reverse=True)

    def insert_session(self, user_id, session):
        if self.fail_insert_after is not None and len(self.inserted) >= self.fail_insert_after:
            raise GatewayError("insert failed")
        self.inserted.append(session)
        stored = Session.from_row(dict(session.to_row(user_id), id=f"db-{self._next_id}"))
        self._next_id += 1
        self.rows.append((user_id, stored))
        return stored

    def load_bankroll(self, user_id):
        if user_id not in self.profiles:
            raise NotConfiguredError("No profile row yet.")
        return self.profiles[user_id]

    def update_bankroll(self, user_id, starting, goal):
        if self.fail_bankroll_update:
            raise GatewayError("profile update failed")
        self.profiles[user_id] = (float(starting), float(goal))


def _form(day, buy_in, cash_out, location="Bellagio"):
    return validate_session_form(day, "cash", "1/2", location, buy_in, cash_out)


class _CoordinatorCase(unittest.TestCase):

    def setUp(self):
        self.gw = FakeGateway()
        self.kv = MemoryKeyValueStore()
        self.store = GuestStore(new_guest_id(), self.kv)
        self.coord = ModeCoordinator(self.gw, self.store)

    def guest_ready(self):
        state = self.coord.enter_guest_mode(AppState())
        return self.coord.load_active_data(state)

    def account_ready(self):
        return self.coord.sign_in(AppState(), "me@example.com", "secret1")


class TestTransitions(unittest.TestCase):

    def test_sign_out_allowed_from_every_phase(self):
        for phase in Phase:
            self.assertIs(TRANSITIONS[(phase, Event.SIGN_OUT)], Phase.ANONYMOUS)

    def test_unknown_transition_raises(self):
        with self.assertRaises(InvalidTransitionError):
            AppState().transition(Event.LOADED)

    def test_signed_in_ready_cannot_authenticate_again(self):
        state = AppState(phase=Phase.READY, mode=Mode.AUTHENTICATED, user_id="u")
        with self.assertRaises(InvalidTransitionError):
            state.transition(Event.AUTHENTICATE)

    def test_guest_ready_can_authenticate(self):
        state = AppState(phase=Phase.READY, mode=Mode.GUEST)
        self.assertIs(state.transition(Event.AUTHENTICATE).phase, Phase.AUTHENTICATED)

    def test_transition_does_not_mutate(self):
        state = AppState()
        nxt = state.transition(Event.ENTER_GUEST, mode=Mode.GUEST)
        self.assertIs(state.phase, Phase.ANONYMOUS)
        self.assertIs(nxt.phase, Phase.GUEST)


class TestGuestMode(_CoordinatorCase):

    def test_fresh_guest_needs_bankroll(self):
        state = self.guest_ready()
        self.assertIs(state.phase, Phase.READY)
        self.assertTrue(state.is_guest)
        self.assertEqual(state.sessions, ())
        self.assertIsNone(state.bankroll)
        self.assertTrue(state.needs_bankroll_setup)

    def test_guest_never_touches_the_gateway(self):
        state = self.guest_ready()
        state = self.coord.setup_bankroll(state, 1000, 5000)
        self.coord.add_session(state, _form("2025-03-01", 100, 200))
        self.assertEqual(self.gw.inserted, [])
        self.assertEqual(self.gw.profiles, {})

    def test_add_session_updates_state_and_store(self):
        state = self.coord.setup_bankroll(self.guest_ready(), 1000, 5000)
        state = self.coord.add_session(state, _form("2025-03-01", 300, 450))
        state = self.coord.add_session(state, _form("2025-03-02", 100, 80))

        self.assertEqual(len(state.sessions), 2)
        self.assertEqual(state.sessions[0].profit, -20.0)
        self.assertEqual(state.bankroll.current_amount, 1130.0)
        self.assertEqual([s.id for s in self.store.load_sessions()], [s.id for s in state.sessions])

    def test_reload_rederives_current(self):
        state = self.coord.setup_bankroll(self.guest_ready(), 1000, 5000)
        state = self.coord.add_session(state, _form("2025-03-01", 300, 450))
        again = self.guest_ready()
        self.assertEqual(again.bankroll, state.bankroll)
        self.assertEqual(again.sessions, state.sessions)

    def test_add_session_before_load_is_rejected(self):
        state = self.coord.enter_guest_mode(AppState())
        with self.assertRaises(InvalidTransitionError):
            self.coord.add_session(state, _form("2025-03-01", 1, 2))

    def test_invalid_bankroll_leaves_state(self):
        state = self.guest_ready()
        with self.assertRaises(ValidationError):
            self.coord.setup_bankroll(state, 500, 100)
        self.assertFalse(self.store.has_data())


class TestAccountMode(_CoordinatorCase):

    def test_sign_in_loads_remote_data(self):
        self.gw.profiles["user-1"] = (1000.0, 5000.0)
        self.gw.insert_session("user-1", _form("2025-03-01", 100, 250).to_session())

        state = self.account_ready()
        self.assertIs(state.phase, Phase.READY)
        self.assertTrue(state.is_authenticated)
        self.assertEqual(state.user_id, "user-1")
        self.assertEqual(state.email, "me@example.com")
        self.assertEqual(len(state.sessions), 1)
        self.assertEqual(state.bankroll.current_amount, 1150.0)

    def test_no_profile_means_setup(self):
        state = self.account_ready()
        self.assertIsNone(state.bankroll)
        self.assertTrue(state.needs_bankroll_setup)

    def test_sign_in_validation_happens_before_network(self):
        with self.assertRaises(ValidationError):
            self.coord.sign_in(AppState(), "", "secret1")

    def test_wrong_password(self):
        with self.assertRaises(GatewayError):
            self.coord.sign_in(AppState(), "me@example.com", "wrong-password")

    def test_load_failure_lands_in_error(self):
        self.gw.fail_fetch = True
        state = self.account_ready()
        self.assertIs(state.phase, Phase.ERROR)
        self.assertTrue(state.is_authenticated)
        self.assertIn("Error loading data", state.error)

        self.gw.fail_fetch = False
        state = self.coord.load_active_data(state)
        self.assertIs(state.phase, Phase.READY)
        self.assertIsNone(state.error)

    def test_load_active_data_raises_data_load_error(self):
        state = self.account_ready()
        self.gw.fail_fetch = True
        with self.assertRaises(DataLoadError):
            self.coord.load_active_data(state)

    def test_add_session_persists_remotely_first(self):
        state = self.coord.setup_bankroll(self.account_ready(), 1000, 2000)
        state = self.coord.add_session(state, _form("2025-03-01", 100, 300))
        self.assertEqual(len(self.gw.inserted), 1)
        self.assertTrue(state.sessions[0].id.startswith("db-"))
        self.assertEqual(state.bankroll.current_amount, 1200.0)
        self.assertEqual(self.store.load_sessions(), [])

    def test_failed_insert_leaves_state_untouched(self):
        state = self.coord.setup_bankroll(self.account_ready(), 1000, 2000)
        self.gw.fail_insert_after = 0
        with self.assertRaises(GatewayError):
            self.coord.add_session(state, _form("2025-03-01", 100, 300))
        self.assertEqual(state.sessions, ())
        self.assertEqual(state.bankroll.current_amount, 1000.0)

    def test_sign_up_with_email_confirmation(self):
        self.gw.sign_up_session = False
        state = self.coord.sign_up(AppState(), "new@example.com", "secret1", "secret1")
        self.assertIs(state.phase, Phase.ANONYMOUS)
        self.assertFalse(state.pending_migration)

    def test_sign_up_password_mismatch(self):
        with self.assertRaises(ValidationError):
            self.coord.sign_up(AppState(), "new@example.com", "secret1", "secret2")


class TestSignOut(_CoordinatorCase):

    def test_clears_local_state(self):
        state = self.coord.setup_bankroll(self.account_ready(), 1000, 2000)
        out = self.coord.sign_out(state)
        self.assertEqual(out, AppState())
        self.assertEqual(self.gw.signed_out, 1)

    def test_remote_failure_still_clears(self):
        self.gw.fail_sign_out = True
        out = self.coord.sign_out(self.account_ready())
        self.assertIs(out.phase, Phase.ANONYMOUS)
        self.assertIsNone(out.user_id)

    def test_guest_exit_keeps_device_data(self):
        state = self.coord.setup_bankroll(self.guest_ready(), 1000, 2000)
        out = self.coord.sign_out(state)
        self.assertIs(out.mode, Mode.ANONYMOUS)
        self.assertEqual(self.gw.signed_out, 0)
        self.assertTrue(self.store.has_data())


class TestMigration(_CoordinatorCase):

    def _guest_with(self, *forms):
        state = self.coord.setup_bankroll(self.guest_ready(), 1000, 5000)
        for f in forms:
            state = self.coord.add_session(state, f)
        return state

    def test_single_session_moves_to_account(self):
        guest = self._guest_with(_form("2025-03-01", 300, 450, location="Aria"))
        local = guest.sessions[0]

        state = self.coord.sign_up(guest, "me@example.com", "secret1", "secret1")

        self.assertEqual(len(self.gw.inserted), 1)
        sent = self.gw.inserted[0]
        for field in ("date", "game_type", "stakes", "location", "buy_in", "cash_out", "profit", "notes"):
            self.assertEqual(getattr(sent, field), getattr(local, field), field)
        self.assertEqual(self.gw.profiles["user-1"], (1000.0, 5000.0))

        self.assertIsNone(self.kv.get(self.store.key(GUEST_SESSIONS_KEY)))
        self.assertIsNone(self.kv.get(self.store.key(GUEST_BANKROLL_KEY)))

        self.assertIs(state.phase, Phase.READY)
        self.assertTrue(state.is_authenticated)
        self.assertFalse(state.pending_migration)
        self.assertEqual(len(state.sessions), 1)
        self.assertEqual(state.bankroll.current_amount, 1150.0)

    def test_oldest_inserted_first(self):
        guest = self._guest_with(
            _form("2025-03-01", 100, 200, location="first"),
            _form("2025-03-02", 100, 200, location="second"),
            _form("2025-03-03", 100, 200, location="third"),
        )
        self.coord.sign_up(guest, "me@example.com", "secret1", "secret1")
        self.assertEqual([s.location for s in self.gw.inserted], ["first", "second", "third"])

    def test_partial_failure_keeps_guest_data(self):
        guest = self._guest_with(_form("2025-03-01", 100, 200), _form("2025-03-02", 100, 50))
        self.gw.fail_insert_after = 1

        with self.assertRaises(MigrationError) as ctx:
            self.coord.sign_up(guest, "me@example.com", "secret1", "secret1")

        err = ctx.exception
        self.assertEqual((err.migrated, err.total), (1, 2))
        self.assertEqual(len(self.store.load_sessions()), 2)
        self.assertTrue(self.store.has_data())
        self.assertTrue(err.state.is_authenticated)
        self.assertTrue(err.state.pending_migration)
        self.assertNotIn("user-1", self.gw.profiles)

    def test_retry_after_failure_duplicates_rows(self):
        guest = self._guest_with(_form("2025-03-01", 100, 200), _form("2025-03-02", 100, 50))
        self.gw.fail_insert_after = 1
        with self.assertRaises(MigrationError) as ctx:
            self.coord.sign_up(guest, "me@example.com", "secret1", "secret1")

        self.gw.fail_insert_after = None
        state = self.coord.migrate_guest_data_to_account(ctx.exception.state, "user-1")
        self.assertEqual(len(state.sessions), 3)
        self.assertFalse(self.store.has_data())

    def test_bankroll_failure_is_a_migration_error(self):
        guest = self._guest_with(_form("2025-03-01", 100, 200))
        self.gw.fail_bankroll_update = True
        with self.assertRaises(MigrationError):
            self.coord.sign_up(guest, "me@example.com", "secret1", "secret1")
        self.assertTrue(self.store.has_data())

    def test_abandon_clears_guest_data(self):
        guest = self._guest_with(_form("2025-03-01", 100, 200))
        self.gw.fail_insert_after = 0
        with self.assertRaises(MigrationError) as ctx:
            self.coord.sign_up(guest, "me@example.com", "secret1", "secret1")

        state = self.coord.abandon_migration(ctx.exception.state)
        self.assertIs(state.phase, Phase.READY)
        self.assertFalse(state.pending_migration)
        self.assertFalse(self.store.has_data())
        self.assertEqual(state.sessions, ())

    def test_empty_guest_skips_migration(self):
        guest = self.guest_ready()
        state = self.coord.sign_up(guest, "me@example.com", "secret1", "secret1")
        self.assertEqual(self.gw.inserted, [])
        self.assertIs(state.phase, Phase.READY)

    def test_sign_up_awaiting_confirmation_marks_pending(self):
        guest = self._guest_with(_form("2025-03-01", 100, 200))
        self.gw.sign_up_session = False

        state = self.coord.sign_up(guest, "me@example.com", "secret1", "secret1")
        self.assertTrue(state.is_guest)
        self.assertTrue(state.pending_migration)
        self.assertEqual(self.gw.inserted, [])

        state = self.coord.sign_in(state, "me@example.com", "secret1")
        self.assertEqual(len(self.gw.inserted), 1)
        self.assertFalse(state.pending_migration)

    def test_migration_needs_matching_account(self):
        state = self.account_ready()
        with self.assertRaises(InvalidTransitionError):
            self.coord.migrate_guest_data_to_account(state, "someone-else")

    def test_guest_sign_in_leaves_existing_account_alone(self):
        self.gw.profiles["user-1"] = (5000.0, 20000.0)
        guest = self.coord.setup_bankroll(self.guest_ready(), 100, 200)
        guest = self.coord.add_session(guest, _form("2025-03-01", 100, 110))

        state = self.coord.sign_in(guest, "me@example.com", "secret1")

        self.assertEqual(self.gw.profiles["user-1"], (5000.0, 20000.0))
        self.assertEqual(self.gw.inserted, [])
        self.assertEqual((state.bankroll.starting_amount, state.bankroll.goal_amount), (5000.0, 20000.0))
        self.assertFalse(state.pending_migration)
        # still on this device for the next guest visit
        self.assertEqual(len(self.store.load_sessions()), 1)
        self.assertEqual(self.store.load_bankroll().starting_amount, 100.0)

    def test_pending_sign_in_keeps_configured_bankroll(self):
        guest = self._guest_with(_form("2025-03-01", 100, 200))
        self.gw.sign_up_session = False
        state = self.coord.sign_up(guest, "me@example.com", "secret1", "secret1")
        # configured elsewhere before the first sign-in here
        self.gw.profiles["user-1"] = (5000.0, 20000.0)

        state = self.coord.sign_in(state, "me@example.com", "secret1")

        self.assertEqual(len(self.gw.inserted), 1)
        self.assertEqual(self.gw.profiles["user-1"], (5000.0, 20000.0))
        self.assertEqual(state.bankroll.current_amount, 5100.0)
        self.assertFalse(self.store.has_data())

    def test_reload_failure_after_migration_is_a_load_error(self):
        guest = self._guest_with(_form("2025-03-01", 100, 200))
        self.gw.fail_fetch = True

        state = self.coord.sign_up(guest, "me@example.com", "secret1", "secret1")

        self.assertIs(state.phase, Phase.ERROR)
        self.assertTrue(state.is_authenticated)
        self.assertFalse(state.pending_migration)
        self.assertEqual(len(self.gw.inserted), 1)
        self.assertFalse(self.store.has_data())

    def test_reload_failure_after_abandon_is_a_load_error(self):
        guest = self._guest_with(_form("2025-03-01", 100, 200))
        self.gw.fail_insert_after = 0
        with self.assertRaises(MigrationError) as ctx:
            self.coord.sign_up(guest, "me@example.com", "secret1", "secret1")

        self.gw.fail_fetch = True
        state = self.coord.abandon_migration(ctx.exception.state)
        self.assertIs(state.phase, Phase.ERROR)
        self.assertFalse(state.pending_migration)
        self.assertFalse(self.store.has_data())


class TestVisitorIsolation(unittest.TestCase):
    """Two visitors share the device backend but never each other's guest data."""

    def setUp(self):
        self.gw = FakeGateway()
        kv = MemoryKeyValueStore()
        self.alice_store = GuestStore(new_guest_id(), kv)
        self.bob_store = GuestStore(new_guest_id(), kv)
        self.alice = ModeCoordinator(self.gw, self.alice_store)
        self.bob = ModeCoordinator(self.gw, self.bob_store)

    def _guest(self, coord, *forms):
        state = coord.load_active_data(coord.enter_guest_mode(AppState()))
        state = coord.setup_bankroll(state, 1000, 5000)
        for f in forms:
            state = coord.add_session(state, f)
        return state

    def test_new_visitor_starts_empty(self):
        self._guest(self.alice, _form("2025-03-01", 100, 200))
        bob = self.bob.load_active_data(self.bob.enter_guest_mode(AppState()))
        self.assertEqual(bob.sessions, ())
        self.assertIsNone(bob.bankroll)

    def test_sign_up_moves_only_own_data(self):
        self._guest(self.alice, _form("2025-03-01", 100, 200, location="alice"))
        bob = self._guest(self.bob, _form("2025-03-02", 100, 50, location="bob"))

        self.bob.sign_up(bob, "bob@example.com", "secret1", "secret1")

        self.assertEqual([s.location for s in self.gw.inserted], ["bob"])
        self.assertFalse(self.bob_store.has_data())
        self.assertEqual([s.location for s in self.alice_store.load_sessions()], ["alice"])
        self.assertIsNotNone(self.alice_store.load_bankroll())


if __name__ == "__main__":
    unittest.main(verbosity=2)
