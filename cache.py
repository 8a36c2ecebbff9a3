# cache.py — Session-scoped holders for the app state and coordinator
#
# One AppState per browser session, kept in st.session_state. Pages read it
# with get_state() and write the coordinator's result back with set_state();
# nothing else assigns to it.

import streamlit as st

from coordinator import AppState, ModeCoordinator, Phase
from errors import PokerTrackerError
from guest_store import is_guest_id, new_guest_id

_STATE_KEY = "_app_state"
_COORDINATOR_KEY = "_coordinator"
_SUBMITTING_KEY = "_submitting"
_SUBMIT_SETTLED_KEY = "_submit_settled"
_FLASH_KEY = "_flash"
# not "_cache_": the visitor keeps the same guest data across sign-out
_GUEST_ID_KEY = "_guest_id"
GUEST_QUERY_PARAM = "guest"


# ============================================================
#  GUEST IDENTITY (one per visitor, pinned to the URL)
# ============================================================

def current_guest_id() -> str:
    """
    This visitor's guest id. Restored from ?guest= on a fresh browser session
    so a reload finds the same data; minted otherwise.
    """
    gid = st.session_state.get(_GUEST_ID_KEY)
    if gid is None:
        from_url = st.query_params.get(GUEST_QUERY_PARAM)
        gid = from_url if is_guest_id(from_url) else new_guest_id()
        st.session_state[_GUEST_ID_KEY] = gid
    return gid


def pin_guest_id() -> None:
    """Page links drop query params; put the id back on every run."""
    gid = current_guest_id()
    if st.query_params.get(GUEST_QUERY_PARAM) != gid:
        st.query_params[GUEST_QUERY_PARAM] = gid


# ============================================================
#  COORDINATOR (gateway + guest store wiring)
# ============================================================

def get_coordinator() -> ModeCoordinator:
    if _COORDINATOR_KEY not in st.session_state:
        from db import SupabaseGateway
        from guest_store import GuestStore

        st.session_state[_COORDINATOR_KEY] = ModeCoordinator(
            SupabaseGateway(), GuestStore(current_guest_id())
        )
    return st.session_state[_COORDINATOR_KEY]


# ============================================================
#  APP STATE
# ============================================================

def get_state() -> AppState:
    if _STATE_KEY not in st.session_state:
        st.session_state[_STATE_KEY] = AppState()
    return st.session_state[_STATE_KEY]


def set_state(state: AppState) -> AppState:
    st.session_state[_STATE_KEY] = state
    return state


def ensure_loaded() -> AppState:
    """
    Run the identity -> load transition once. A GUEST or AUTHENTICATED state
    that has not loaded yet gets loaded here; failures land in Phase.ERROR.
    """
    pin_guest_id()
    state = get_state()
    if state.phase not in (Phase.GUEST, Phase.AUTHENTICATED):
        return state
    if state.is_authenticated and state.pending_migration:
        # the gate asks retry-or-discard first
        return state

    coord = get_coordinator()
    with st.spinner("Loading..."):
        try:
            state = coord.load_active_data(state)
        except PokerTrackerError as e:
            print(f"[cache] ensure_loaded error: {e!r}")
            state = coord.fail_load(state, e)
    return set_state(state)


# ============================================================
#  DOUBLE-SUBMIT GUARD
# ============================================================

def is_submitting() -> bool:
    return bool(st.session_state.get(_SUBMITTING_KEY, False))


def begin_submit() -> None:
    """
    on_click callback for submit buttons. Runs before the script reruns, so
    the button is already rendered disabled on the run that does the write.
    """
    st.session_state[_SUBMITTING_KEY] = True


def end_submit() -> None:
    """The result is applied; buttons come back on the next run."""
    st.session_state[_SUBMIT_SETTLED_KEY] = True


def settle_submit() -> None:
    """Call once at the top of a run, before any submit button renders."""
    if st.session_state.pop(_SUBMIT_SETTLED_KEY, False):
        st.session_state[_SUBMITTING_KEY] = False


# ============================================================
#  FLASH MESSAGES (shown on the run after an action)
# ============================================================

def flash(kind: str, message: str) -> None:
    """kind is one of error, warning, success, toast."""
    st.session_state.setdefault(_FLASH_KEY, []).append((kind, message))


def pop_flash() -> list:
    return st.session_state.pop(_FLASH_KEY, [])


# ============================================================
#  CONVENIENCE: clear everything on sign-out
# ============================================================

def clear_all_user_caches() -> None:
    """
    Drop the app state and any per-user keys.
    Call on logout/login so no data bleeds between users.
    """
    prefixes = ("_cache_", "_form_")
    for k in [k for k in list(st.session_state.keys()) if str(k).startswith(prefixes)]:
        del st.session_state[k]
    st.session_state[_STATE_KEY] = AppState()
    st.session_state[_SUBMITTING_KEY] = False
    st.session_state.pop(_SUBMIT_SETTLED_KEY, None)
