# supabase_client.py — per-session anon client (RLS enforced)
from __future__ import annotations

import streamlit as st

from supabase import Client, ClientOptions, create_client

from errors import GatewayError
from settings import app_env, supabase_anon_key, supabase_url

# "_cache_" prefix: cleared with the other per-user keys on sign-out
_CLIENT_KEY = "_cache_supabase_client"


class SupabaseConfigError(GatewayError):
    pass


def _cfg() -> tuple[str, str]:
    url = supabase_url()
    anon = supabase_anon_key()

    if not url or not anon:
        suffix = "DEV" if app_env() == "dev" else "PROD"
        raise SupabaseConfigError(
            f"Missing Supabase credentials. Need SUPABASE_URL_{suffix} and SUPABASE_ANON_KEY_{suffix}. "
            "Guest mode works without them."
        )
    return url, anon


def _make_client(url: str, key: str) -> Client:
    """
    No SDK persistence/refresh: tokens come from our GoTrue calls and are
    bound with auth.set_session() on this client only.
    """
    opts = ClientOptions(
        persist_session=False,
        auto_refresh_token=False,
    )
    return create_client(url, key, options=opts)


def get_supabase() -> Client:
    """Per-Streamlit-session ANON client, built on first use."""
    client = st.session_state.get(_CLIENT_KEY)
    if client is None:
        url, anon = _cfg()
        client = st.session_state[_CLIENT_KEY] = _make_client(url, anon)
    return client


def reset_supabase_client():
    """
    Force creation of a new anon client on next get_supabase() call.
    Call this after login/logout so no stale auth state bleeds between users.
    """
    st.session_state.pop(_CLIENT_KEY, None)
