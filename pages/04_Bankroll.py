# 04_Bankroll.py — starting amount and goal

import streamlit as st

st.set_page_config(
    page_title="Bankroll | Seven Deuce",
    page_icon="💼",
    layout="centered",
)

from auth import require_auth, show_auth_screen
from sidebar import render_sidebar
from aggregator import totals
from bankroll import progress_percentage
from views import format_money, render_bankroll_form

# ---------- Auth Gate ----------
state = require_auth()
render_sidebar(state)


def main():
    st.title("💼 Bankroll")

    bankroll = state.bankroll
    if bankroll is not None:
        t = totals(state.sessions)
        c1, c2, c3 = st.columns(3)
        c1.metric("Starting", format_money(bankroll.starting_amount, include_sign=False))
        c2.metric("Current", format_money(bankroll.current_amount, include_sign=False), delta=f"{t.total_profit:,.2f}")
        c3.metric("Goal", format_money(bankroll.goal_amount, include_sign=False))
        st.progress(progress_percentage(bankroll) / 100.0)
        st.caption("Current is your starting amount plus every session's profit.")
        st.markdown("---")

    render_bankroll_form(initial=bankroll, key="_form_bankroll_edit")

    if state.is_guest:
        st.markdown("---")
        st.warning(
            "You're in guest mode. This bankroll and your sessions live on this device only. "
            "Create an account to keep them; they will be moved over when you sign up.",
            icon="💾",
        )
        if st.button("✨ Create Account", use_container_width=True):
            show_auth_screen()


if __name__ == "__main__":
    main()
