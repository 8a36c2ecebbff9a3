# 02_Session_History.py — every recorded session, filterable, exportable

import streamlit as st
from datetime import datetime

st.set_page_config(
    page_title="Session History | Seven Deuce",
    page_icon="📋",
    layout="wide",
)

from auth import require_auth
from sidebar import render_sidebar
from aggregator import RESULT_OPTIONS, filter_sessions, totals
from models import GameType
from views import format_money, render_session_rows, sessions_to_dataframe

# ---------- Auth Gate ----------
state = require_auth()
render_sidebar(state)

GAME_TYPE_OPTIONS = ["All Games"] + [g.value for g in GameType]


def render_filters() -> tuple:
    """Render filter controls and return filter values."""
    st.markdown("### 🔍 Filters")

    col1, col2 = st.columns(2)
    with col1:
        game_choice = st.selectbox(
            "Game Type",
            GAME_TYPE_OPTIONS,
            format_func=lambda v: v if v == "All Games" else GameType(v).label,
            key="filter_game_type",
        )
    with col2:
        result_filter = st.selectbox("Result", RESULT_OPTIONS, key="filter_result")

    game_type = None if game_choice == "All Games" else GameType(game_choice)
    return game_type, result_filter


def render_summary_stats(sessions):
    t = totals(sessions)
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Sessions", t.count)
    c2.metric("Net Profit", format_money(t.total_profit))
    c3.metric("Win Rate", f"{t.win_rate:.0f}%")
    c4.metric("Avg / Session", format_money(t.avg_profit))


def render_export_button(sessions):
    if not sessions:
        return
    csv = sessions_to_dataframe(sessions).to_csv(index=False)
    st.download_button(
        label="📥 Export to CSV",
        data=csv,
        file_name=f"poker_sessions_{datetime.now().strftime('%Y%m%d')}.csv",
        mime="text/csv",
    )


def main():
    st.title("📋 Session History")
    st.caption("All your poker sessions")

    if not state.sessions:
        st.info("No sessions yet. Add your first session to get started!")
        st.page_link("pages/01_Add_Session.py", label="Add Session", icon="➕")
        return

    game_type, result_filter = render_filters()
    filtered = filter_sessions(state.sessions, game_type, result_filter)

    st.markdown("---")

    if not filtered:
        st.info("No sessions match your filters. Try adjusting the criteria.")
        return

    render_summary_stats(filtered)

    col1, col2 = st.columns([3, 1])
    with col2:
        render_export_button(filtered)

    tab1, tab2 = st.tabs(["📋 Session List", "📊 Table"])
    with tab1:
        st.markdown(f"**Showing {len(filtered)} sessions**")
        render_session_rows(filtered)
    with tab2:
        st.dataframe(sessions_to_dataframe(filtered), use_container_width=True, hide_index=True)


if __name__ == "__main__":
    main()
