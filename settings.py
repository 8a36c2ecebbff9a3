# settings.py — config lookup: env vars first, then Streamlit secrets
from __future__ import annotations

import os
from typing import Any

import streamlit as st


def get_secret(name: str, default: Any = None) -> Any:
    """Read from env var or Streamlit secrets."""
    v = os.getenv(name)
    if v:
        return v
    try:
        if name in st.secrets:
            v2 = st.secrets[name]
            if v2:
                return v2
    except Exception:
        # no secrets.toml on this machine
        pass
    return default


def app_env() -> str:
    return str(get_secret("APP_ENV", "prod") or "prod").lower().strip()


def supabase_url() -> str:
    key = "SUPABASE_URL_DEV" if app_env() == "dev" else "SUPABASE_URL_PROD"
    return str(get_secret(key) or "")


def supabase_anon_key() -> str:
    key = "SUPABASE_ANON_KEY_DEV" if app_env() == "dev" else "SUPABASE_ANON_KEY_PROD"
    return str(get_secret(key) or "")


def guest_data_dir() -> str:
    """Where guest-mode data lives on this device."""
    raw = get_secret("GUEST_DATA_DIR") or os.path.join("~", ".seven_deuce")
    return os.path.expanduser(str(raw))
