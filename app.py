# app.py — gated home: bankroll card, quick stats, recent sessions

import streamlit as st

from settings import app_env

# ---- Page meta (run first) ----
env_suffix = " (DEV)" if app_env() == "dev" else ""
st.set_page_config(
    page_title=f"Seven Deuce{env_suffix}",
    page_icon="♠️",
    layout="centered",
    initial_sidebar_state="expanded",
)

# ---- Auth gate (guest or account; hides everything until chosen) ----
from auth import require_auth
state = require_auth()

# ---- Shared sidebar (only after auth) ----
from sidebar import render_sidebar
render_sidebar(state)

from aggregator import recent, totals
from bankroll import progress_percentage
from views import format_money, pl_color, render_bankroll_form, render_session_rows

# ---- First run: no bankroll yet ----
if state.needs_bankroll_setup:
    render_bankroll_form(key="_form_bankroll_setup")
    st.stop()

bankroll = state.bankroll
t = totals(state.sessions)
pct = progress_percentage(bankroll)

st.title("♠️ Seven Deuce")
st.caption("Track your live poker journey")

if state.is_guest:
    st.caption("👤 Guest mode — data lives on this device only.")

st.markdown("""
<style>
.hero-card{
  border:1px solid #1f1f1f;
  background:linear-gradient(180deg,#0e0e0f,#121214);
  border-radius:14px;
  padding:14px 16px;
  margin-bottom:12px;
}
.hero-title{color:#9ca3af;font-size:.9rem;margin-bottom:6px}
.hero-value{font-size:1.6rem;font-weight:800;color:#e5e7eb}
.kicker{color:#9ca3af;font-size:.82rem}
</style>
""", unsafe_allow_html=True)

# ------------------ Bankroll Overview ------------------
with st.container(border=True):
    head, edit = st.columns([4, 1])
    with head:
        st.subheader("Bankroll")
    with edit:
        st.page_link("pages/04_Bankroll.py", label="Edit", icon="✏️")

    st.markdown(
        "<div class='hero-card' style='text-align:center'>"
        f"<div class='hero-value'>${bankroll.current_amount:,.2f}</div>"
        "</div>",
        unsafe_allow_html=True,
    )
    st.markdown(f"#### :{pl_color(t.total_profit)}[{format_money(t.total_profit)}]")

    g1, g2 = st.columns(2)
    with g1:
        st.caption("Goal Progress")
    with g2:
        st.caption(f"Goal: ${bankroll.goal_amount:,.2f}")
    st.progress(pct / 100.0)
    st.caption(f"{pct:.1f}% to goal")

# ------------------ Quick Stats ------------------
c1, c2 = st.columns(2)
with c1:
    st.metric("Sessions", t.count)
with c2:
    st.metric("Win Rate", f"{t.win_rate:.0f}%")

# ------------------ Primary CTA ------------------
st.page_link("pages/01_Add_Session.py", label="Add Session", icon="➕")
st.page_link("pages/03_Analytics.py", label="View Analytics", icon="📈")

st.markdown("---")

# ------------------ Recent Sessions ------------------
st.subheader("Recent Sessions")
render_session_rows(recent(state.sessions, 5))
if t.count > 5:
    st.page_link("pages/02_Session_History.py", label=f"See all {t.count} sessions", icon="📜")
