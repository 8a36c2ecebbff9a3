# 03_Analytics.py — overview, best spots, breakdowns and charts

import altair as alt
import pandas as pd
import streamlit as st

st.set_page_config(
    page_title="Analytics | Seven Deuce",
    page_icon="📈",
    layout="wide",
)

from auth import require_auth
from sidebar import render_sidebar
from aggregator import (
    best_game_type,
    best_location,
    group_by_game_type_and_stakes,
    group_by_location,
    monthly,
    ranked,
    time_series,
    totals,
)
from views import format_money, pl_color

# ---------- Auth Gate ----------
state = require_auth()
render_sidebar(state)


def render_overview(sessions):
    t = totals(sessions)
    c1, c2, c3, c4 = st.columns(4)
    with c1:
        st.metric("Total Profit", format_money(t.total_profit))
    with c2:
        st.metric("Win Rate", f"{t.win_rate:.1f}%", help=f"{t.winning_sessions} of {t.count} sessions")
    with c3:
        st.metric("Avg Profit", format_money(t.avg_profit))
    with c4:
        st.metric("Total Buy-ins", format_money(t.total_buy_ins, include_sign=False))


def render_best(sessions):
    loc = best_location(sessions)
    game = best_game_type(sessions)

    c1, c2 = st.columns(2)
    with c1:
        with st.container(border=True):
            st.caption("🏆 Best Location")
            if loc:
                name, g = loc
                st.markdown(f"**{name}**")
                st.markdown(f":{pl_color(g.profit)}[{format_money(g.profit)}] · {g.sessions} sessions")
    with c2:
        with st.container(border=True):
            st.caption("🎯 Best Game")
            if game:
                (gt, stakes), g = game
                st.markdown(f"**{gt.short_label} {stakes}**")
                st.markdown(f":{pl_color(g.profit)}[{format_money(g.profit)}] · {g.sessions} sessions")


def render_breakdown(title, rows):
    st.markdown(f"### {title}")
    for label, g in rows:
        c1, c2 = st.columns([3, 1])
        with c1:
            st.markdown(f"**{label}**")
            st.caption(f"{g.sessions} session{'s' if g.sessions != 1 else ''}")
        with c2:
            st.markdown(f":{pl_color(g.profit)}[{format_money(g.profit)}]")


def render_profit_curve(sessions):
    st.markdown("### 📈 Profit Over Time")
    points = time_series(sessions)
    if not points:
        st.info("No session data to display.")
        return
    df = pd.DataFrame(
        {
            "date": [p.date for p in points],
            "running_total": [p.cumulative_profit for p in points],
        }
    )
    st.line_chart(df.set_index("date")["running_total"], use_container_width=True)


def render_monthly(sessions):
    st.markdown("### 📅 Monthly Performance")
    months = monthly(sessions)
    if not months:
        return
    df = pd.DataFrame(
        {
            "Month": [m.label for m in months],
            "Profit": [m.profit for m in months],
            "Sessions": [m.sessions for m in months],
            "Result": ["Win" if m.profit >= 0 else "Loss" for m in months],
        }
    )
    bar = (
        alt.Chart(df)
        .mark_bar(cornerRadiusEnd=4)
        .encode(
            x=alt.X("Month:N", sort=[m.label for m in months], title=None),
            y=alt.Y("Profit:Q", title="Profit ($)"),
            color=alt.Color(
                "Result:N",
                scale=alt.Scale(domain=["Win", "Loss"], range=["#22c55e", "#ef4444"]),
                legend=None,
            ),
            tooltip=[
                alt.Tooltip("Month:N"),
                alt.Tooltip("Profit:Q", format=",.2f"),
                alt.Tooltip("Sessions:Q"),
            ],
        )
        .properties(height=260)
        .configure_axis(labelColor="#a1a1aa", titleColor="#a1a1aa", gridColor="#2b2b2b")
        .configure_view(strokeWidth=0)
    )
    st.altair_chart(bar, use_container_width=True)


def main():
    st.title("📈 Analytics")
    st.caption("Your poker performance insights")

    sessions = state.sessions
    if not sessions:
        st.info("No data yet. Add some sessions to see your analytics.")
        st.page_link("pages/01_Add_Session.py", label="Add Session", icon="➕")
        return

    render_overview(sessions)
    render_best(sessions)

    by_location = group_by_location(sessions)
    if len(by_location) > 1:
        render_breakdown("📍 By Location", ranked(by_location))

    by_game = group_by_game_type_and_stakes(sessions)
    if len(by_game) > 1:
        render_breakdown(
            "🃏 By Game Type",
            [(f"{gt.short_label} {stakes}", g) for (gt, stakes), g in ranked(by_game)],
        )

    st.markdown("---")
    render_profit_curve(sessions)
    render_monthly(sessions)


if __name__ == "__main__":
    main()
