# views.py — formatting + widgets shared by app.py and pages/
from __future__ import annotations

import datetime as dt
from typing import Iterable, Optional

import pandas as pd
import streamlit as st

from auth import action_button, run_action
from cache import get_coordinator, get_state
from models import BankrollSnapshot, GameType, Session


def format_money(amount: Optional[float], include_sign: bool = True, decimals: int = 2) -> str:
    """Format money with optional sign."""
    if amount is None:
        return "—"
    if include_sign:
        if amount >= 0:
            return f"+${amount:,.{decimals}f}"
        return f"-${abs(amount):,.{decimals}f}"
    return f"${abs(amount):,.{decimals}f}"


def pl_color(amount: float) -> str:
    return "green" if amount >= 0 else "red"


def sessions_to_dataframe(sessions: Iterable[Session]) -> pd.DataFrame:
    data = [
        {
            "Date": s.date,
            "Game": s.game_type.short_label,
            "Stakes": s.stakes,
            "Location": s.location,
            "Buy In": s.buy_in,
            "Cash Out": s.cash_out,
            "Profit": s.profit,
            "Notes": s.notes,
        }
        for s in sessions
    ]
    return pd.DataFrame(data, columns=["Date", "Game", "Stakes", "Location", "Buy In", "Cash Out", "Profit", "Notes"])


def render_session_rows(sessions: Iterable[Session]) -> None:
    sessions = list(sessions)
    if not sessions:
        st.info("No sessions yet. Add your first session to get started!")
        return

    for s in sessions:
        with st.container(border=True):
            c1, c2 = st.columns([3, 1])
            with c1:
                st.markdown(f"**{s.location}** · {s.stakes}")
                st.caption(f"{s.date.strftime('%b %d, %Y')} · {s.game_type.label}")
                if s.notes:
                    st.caption(s.notes)
            with c2:
                st.markdown(f"### :{pl_color(s.profit)}[{format_money(s.profit, decimals=0)}]")
                st.caption(f"In ${s.buy_in:,.0f} · Out ${s.cash_out:,.0f}")


def render_bankroll_form(initial: Optional[BankrollSnapshot] = None, key: str = "_form_bankroll"):
    """Setup (initial is None) or update form. Reruns the page once saved."""
    coord = get_coordinator()
    state = get_state()

    title = "Update Bankroll" if initial else "Setup Your Bankroll"
    st.subheader(f"🎯 {title}")
    st.caption("Update your bankroll settings" if initial else "Set your starting bankroll and goal to begin tracking")

    with st.form(key):
        starting = st.number_input(
            "Starting Bankroll",
            min_value=0.0,
            step=100.0,
            value=float(initial.starting_amount) if initial else 1000.0,
        )
        goal = st.number_input(
            "Bankroll Goal",
            min_value=0.0,
            step=100.0,
            value=float(initial.goal_amount) if initial else 5000.0,
        )
        submitted = action_button(
            "Update Bankroll" if initial else "Start Tracking",
            form=True,
            type="primary",
            use_container_width=True,
        )

    if submitted:
        run_action(
            lambda: coord.setup_bankroll(state, starting, goal),
            "Bankroll updated! Your bankroll settings have been saved",
        )


def game_type_options() -> list:
    return [g.value for g in GameType]


def today() -> dt.date:
    return dt.date.today()
