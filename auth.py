# auth.py — sign in / sign up / guest gate (session-state only, hard refresh = re-login)
from __future__ import annotations

import streamlit as st

from cache import (
    begin_submit,
    clear_all_user_caches,
    end_submit,
    ensure_loaded,
    flash,
    get_coordinator,
    get_state,
    is_submitting,
    pop_flash,
    set_state,
    settle_submit,
)
from coordinator import AppState, Phase
from errors import MigrationError, PokerTrackerError, ValidationError
from settings import app_env

APP_TITLE = "Seven Deuce"
_SHOW_AUTH_KEY = "_show_auth"


# ---------------- UI helpers ----------------
def _hide_sidebar_while_logged_out():
    """Hide sidebar navigation when nobody is signed in (guest or account)."""
    st.markdown(
        """
        <style>
            section[data-testid="stSidebar"] [data-testid="stSidebarNav"] {
                display: none !important;
            }
            footer {visibility: hidden !important;}
            .stDeployButton {display: none !important;}
        </style>
        """,
        unsafe_allow_html=True,
    )


def show_auth_screen():
    """Guest asked to create an account / sign in from inside the app."""
    st.session_state[_SHOW_AUTH_KEY] = True
    st.rerun()


def _hide_auth_screen(_state=None):
    st.session_state[_SHOW_AUTH_KEY] = False


def action_button(label: str, *, key: str | None = None, form: bool = False, **kw) -> bool:
    """
    Button for a write. Greyed out from the click until run_action has applied
    the result, so a second click cannot send the same write twice.
    """
    if key is not None:
        kw["key"] = key
    button = st.form_submit_button if form else st.button
    return button(label, on_click=begin_submit, disabled=is_submitting(), **kw)


def run_action(op, success: str | None = None, after=None):
    """
    Run a coordinator call that returns the next AppState, then rerun.
    State is only replaced on success; errors are shown on the next run.
    after(new_state) runs on success before the rerun.
    """
    try:
        nxt = set_state(op())
    except MigrationError as e:
        if e.state is not None:
            set_state(e.state)
        flash("error", f"Migration incomplete: {e}")
    except ValidationError as e:
        flash("error", str(e))
    except PokerTrackerError as e:
        print(f"[auth.run_action] error: {e!r}")
        flash("error", f"Error: {e}")
    else:
        if after is not None:
            after(nxt)
        if success:
            flash("toast", success)
    finally:
        end_submit()
    st.rerun()


def _show_flash():
    for kind, message in pop_flash():
        if kind == "toast":
            st.toast(message)
        else:
            getattr(st, kind)(message)


# ---------------- Logout ----------------
def sign_out():
    """Clear session and force re-render to the gate."""
    coord = get_coordinator()
    set_state(coord.sign_out(get_state()))
    clear_all_user_caches()
    st.session_state[_SHOW_AUTH_KEY] = False
    flash("toast", "Signed out. Come back soon!")
    st.rerun()


# ---------------- Gate screens ----------------
def _guest_welcome(state: AppState):
    coord = get_coordinator()

    st.subheader(f"Welcome to {APP_TITLE}")
    st.caption("Try our poker session tracker")
    st.warning(
        "**Guest Mode Notice** — your data will be saved locally on this device only. "
        "If the data is cleared or you switch devices, your sessions will be lost. "
        "Create an account to keep your data permanently.",
        icon="⚠️",
    )
    st.markdown(
        "- Track poker sessions\n"
        "- Set bankroll goals\n"
        "- View analytics and progress\n\n"
        "Guest data can be migrated to your account when you sign up."
    )
    if action_button("▶️ Continue as Guest", key="_act_guest", use_container_width=True):
        run_action(lambda: coord.enter_guest_mode(state))


def _after_sign_up(nxt: AppState):
    if nxt.is_authenticated:
        _hide_auth_screen()
        flash("toast", "Account created!")
        return
    flash("success", "Success! Please check your email to confirm your account, then sign in.")
    if nxt.pending_migration:
        flash("info", "Your guest sessions will move to your account the first time you sign in.")


def _auth_forms(state: AppState):
    coord = get_coordinator()

    tab_in, tab_up = st.tabs(["Sign In", "Sign Up"])

    with tab_in:
        if state.is_guest:
            st.caption(
                "Signing in to an existing account leaves your guest data on this device. "
                "Create a new account to move it over."
            )
        with st.form("_form_sign_in"):
            email = st.text_input("Email", key="_form_login_email")
            password = st.text_input("Password", type="password", key="_form_login_password")
            submitted = action_button("Sign In", form=True, type="primary", use_container_width=True)
        if submitted:
            run_action(
                lambda: coord.sign_in(state, email, password),
                "Welcome back! Successfully signed in",
                after=_hide_auth_screen,
            )

    with tab_up:
        with st.form("_form_sign_up"):
            email_up = st.text_input("Email", key="_form_signup_email")
            password_up = st.text_input("Password", type="password", key="_form_signup_password")
            confirm_up = st.text_input("Confirm Password", type="password", key="_form_signup_confirm")
            submitted_up = action_button("Create Account", form=True, type="primary", use_container_width=True)
        if submitted_up:
            run_action(lambda: coord.sign_up(state, email_up, password_up, confirm_up), after=_after_sign_up)

    if state.is_guest:
        if st.button("← Back to guest mode", use_container_width=True):
            _hide_auth_screen()
            st.rerun()


def _migration_recovery(state: AppState):
    coord = get_coordinator()

    st.subheader("Finish moving your guest data")
    st.error(
        "Some guest sessions could not be copied to your account. "
        "Your local copies are untouched. Retrying copies every guest session again, "
        "so sessions that already made it may appear twice."
    )
    c1, c2 = st.columns(2)
    with c1:
        if action_button("🔁 Retry migration", key="_act_migrate_retry", use_container_width=True):
            run_action(lambda: coord.migrate_guest_data_to_account(state, state.user_id), "Guest data migrated!")
    with c2:
        if action_button("Discard guest data", key="_act_migrate_discard", use_container_width=True):
            run_action(lambda: coord.abandon_migration(state))


def _load_error(state: AppState):
    st.error(f"Error loading data: {state.error}")
    c1, c2 = st.columns(2)
    with c1:
        if action_button("🔁 Try again", key="_act_retry_load", use_container_width=True):
            _retry_load(state)
    with c2:
        if st.button("🚪 Sign Out", use_container_width=True):
            sign_out()


def _retry_load(state: AppState):
    coord = get_coordinator()
    run_action(lambda: coord.load_active_data(state))


# ---------------- Main gate ----------------
def require_auth() -> AppState:
    """
    Gate for every page. Returns a READY AppState (guest or account).
    Otherwise renders the right screen and stops the script.
    """
    settle_submit()
    state = ensure_loaded()
    _show_flash()

    wants_auth = bool(st.session_state.get(_SHOW_AUTH_KEY, False))
    migrating = state.is_authenticated and state.pending_migration
    if state.phase is Phase.READY and not migrating and not (wants_auth and state.is_guest):
        return state

    _hide_sidebar_while_logged_out()
    st.title(f"♠️ {APP_TITLE}")
    st.caption("Track your live poker journey")
    if app_env() == "dev":
        st.caption("🔧 Development Environment")

    if migrating:
        _migration_recovery(state)
    elif state.phase is Phase.ERROR:
        _load_error(state)
    elif state.phase is Phase.ANONYMOUS:
        _auth_forms(state)
        st.divider()
        _guest_welcome(state)
    else:
        _auth_forms(state)

    st.stop()
