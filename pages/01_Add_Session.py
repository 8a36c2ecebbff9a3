# 01_Add_Session.py — record one live session
#
# Plain widgets instead of st.form so the profit preview updates as you type.

import streamlit as st

st.set_page_config(
    page_title="Add Session | Seven Deuce",
    page_icon="➕",
    layout="centered",
)

from auth import action_button, require_auth, run_action
from sidebar import render_sidebar
from cache import flash, get_coordinator
from models import GameType, validate_session_form
from views import format_money, game_type_options, pl_color, render_bankroll_form, today

# ---------- Auth Gate ----------
state = require_auth()
render_sidebar(state)

FIELD_KEYS = (
    "_form_add_date",
    "_form_add_game_type",
    "_form_add_stakes",
    "_form_add_location",
    "_form_add_buy_in",
    "_form_add_cash_out",
    "_form_add_notes",
)


def _reset_form():
    for k in FIELD_KEYS:
        st.session_state.pop(k, None)


_RESET_KEY = "_add_reset"


def _after_add(nxt):
    added = nxt.sessions[0]
    flash("toast", f"Session added! Profit/Loss: {format_money(added.profit)}")
    # widgets are already built this run; clear them at the top of the next one
    st.session_state[_RESET_KEY] = True


def main():
    if st.session_state.pop(_RESET_KEY, False):
        _reset_form()

    st.title("➕ Add Session")
    st.caption("Record your poker session")

    if state.needs_bankroll_setup:
        st.info("Set up your bankroll first so new sessions count toward your goal.")
        render_bankroll_form(key="_form_bankroll_setup")
        return

    c1, c2 = st.columns(2)
    with c1:
        date = st.date_input("Date", value=today(), key="_form_add_date")
    with c2:
        game_type = st.selectbox(
            "Game Type",
            game_type_options(),
            format_func=lambda v: GameType(v).label,
            key="_form_add_game_type",
        )

    c3, c4 = st.columns(2)
    with c3:
        stakes = st.text_input("Stakes", placeholder="e.g., 1/2, 2/5", key="_form_add_stakes")
    with c4:
        location = st.text_input("Location", placeholder="e.g., Bellagio, Home Game", key="_form_add_location")

    c5, c6 = st.columns(2)
    with c5:
        buy_in = st.number_input("Buy In ($)", min_value=0.0, step=20.0, value=None, key="_form_add_buy_in")
    with c6:
        cash_out = st.number_input("Cash Out ($)", min_value=0.0, step=20.0, value=None, key="_form_add_cash_out")

    # ---------- Live preview ----------
    if buy_in is not None and cash_out is not None:
        preview = round(cash_out - buy_in, 2)
        with st.container(border=True):
            st.caption("Profit/Loss")
            st.markdown(f"### :{pl_color(preview)}[{format_money(preview)}]")

    notes = st.text_area("Notes (Optional)", placeholder="Any notes about this session...", key="_form_add_notes")

    if action_button("Add Session", key="_act_add_session", type="primary", use_container_width=True):
        coord = get_coordinator()

        def _add():
            form = validate_session_form(date, game_type, stakes, location, buy_in, cash_out, notes)
            return coord.add_session(state, form)

        run_action(_add, after=_after_add)


if __name__ == "__main__":
    main()
