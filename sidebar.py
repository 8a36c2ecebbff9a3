# sidebar.py — Navigation Sidebar for Seven Deuce

import streamlit as st

from aggregator import totals
from auth import show_auth_screen, sign_out
from bankroll import progress_percentage
from coordinator import AppState


def render_sidebar(state: AppState):
    """
    Render the sidebar with identity, bankroll snapshot and navigation.

    Call this at the top of every page after require_auth().
    """

    with st.sidebar:
        # ---------- Branding ----------
        st.markdown("## ♠️ Seven Deuce")

        # ---------- User Info ----------
        if state.is_guest:
            st.caption("👤 Guest (data saved on this device)")
        else:
            st.caption(f"👤 {state.email or ''}")

        st.markdown("---")

        # ---------- Bankroll ----------
        bankroll = state.bankroll
        if bankroll is not None:
            t = totals(state.sessions)
            pl_color = "green" if t.total_profit >= 0 else "red"
            pl_sign = "+" if t.total_profit >= 0 else ""

            st.markdown("### 💰 Bankroll")
            st.markdown(f"**${bankroll.current_amount:,.2f}**")
            st.markdown(f":{pl_color}[{pl_sign}${t.total_profit:,.2f}]")

            pct = progress_percentage(bankroll)
            st.progress(pct / 100.0, text=f"{pct:.1f}% to ${bankroll.goal_amount:,.0f}")

            st.markdown("---")

        # ---------- Navigation ----------
        st.markdown("### Navigation")
        st.page_link("app.py", label="Dashboard", icon="🏠")
        st.page_link("pages/01_Add_Session.py", label="Add Session", icon="➕")
        st.page_link("pages/02_Session_History.py", label="Session History", icon="📜")
        st.page_link("pages/03_Analytics.py", label="Analytics", icon="📈")
        st.page_link("pages/04_Bankroll.py", label="Bankroll", icon="💼")

        st.markdown("---")

        # ---------- Guest upsell ----------
        if state.is_guest:
            st.info("Create an account to keep your data permanently.", icon="💾")
            if st.button("✨ Create Account / Sign In", use_container_width=True):
                show_auth_screen()

        # ---------- Sign Out ----------
        label = "🚪 Exit Guest Mode" if state.is_guest else "🚪 Sign Out"
        if st.button(label, use_container_width=True):
            sign_out()
