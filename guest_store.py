# guest_store.py — on-device persistence for guest mode (no network)
#
# Two keys per visitor: the session list and the bankroll settings, both
# prefixed with that visitor's guest id so browsers sharing one server never
# see each other's data. A missing key is an empty state, never an error.
from __future__ import annotations

import json
import os
import re
import uuid
from typing import Any, Dict, List, Optional

from bankroll import snapshot_from
from errors import StorageError
from models import BankrollSnapshot, Session
from settings import guest_data_dir

GUEST_SESSIONS_KEY = "seven_deuce_guest_sessions"
GUEST_BANKROLL_KEY = "seven_deuce_guest_bankroll"

_GUEST_ID_RE = re.compile(r"[0-9a-f]{32}")


def new_guest_id() -> str:
    return uuid.uuid4().hex


def is_guest_id(value) -> bool:
    """Only ids we minted; anything else could escape the data directory."""
    return isinstance(value, str) and _GUEST_ID_RE.fullmatch(value) is not None


class MemoryKeyValueStore:
    def __init__(self) -> None:
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class FileKeyValueStore:
    """One JSON file per key under root. Writes go through a temp file + os.replace."""

    def __init__(self, root: Optional[str] = None) -> None:
        self.root = root or guest_data_dir()

    def _path(self, key: str) -> str:
        return os.path.join(self.root, f"{key}.json")

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not os.path.exists(path):
            return None
        with open(path, "r", encoding="utf-8") as f:
            return f.read()

    def set(self, key: str, value: str) -> None:
        os.makedirs(self.root, exist_ok=True)
        path = self._path(key)
        tmp = path + ".tmp"
        with open(tmp, "w", encoding="utf-8") as f:
            f.write(value)
        os.replace(tmp, path)

    def delete(self, key: str) -> None:
        try:
            os.remove(self._path(key))
        except FileNotFoundError:
            pass


class GuestStore:
    """One visitor's guest data. clear() and has_data() never look past owner."""

    def __init__(self, owner: str, kv=None) -> None:
        if not is_guest_id(owner):
            raise ValueError(f"not a guest id: {owner!r}")
        self.owner = owner
        self.kv = kv if kv is not None else FileKeyValueStore()

    def key(self, name: str) -> str:
        return f"{self.owner}_{name}"

    def _read_json(self, key: str) -> Any:
        try:
            raw = self.kv.get(key)
        except OSError as e:
            raise StorageError(f"Could not read guest data: {e}") from e
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError as e:
            print(f"[guest_store] corrupt payload under {key!r}, treating as empty: {e!r}")
            return None

    def _write_json(self, key: str, payload: Any) -> None:
        try:
            self.kv.set(key, json.dumps(payload, ensure_ascii=False, indent=2))
        except OSError as e:
            raise StorageError(f"Could not save guest data: {e}") from e

    # ---------- sessions ----------

    def load_sessions(self) -> List[Session]:
        """Newest first, as stored."""
        raw = self._read_json(self.key(GUEST_SESSIONS_KEY))
        if not isinstance(raw, list):
            return []

        out: List[Session] = []
        for item in raw:
            if not isinstance(item, dict):
                continue
            try:
                out.append(Session.from_dict(item))
            except Exception as e:
                print(f"[guest_store.load_sessions] skipping bad record {item.get('id')!r}: {e!r}")
        return out

    def save_sessions(self, sessions: List[Session]) -> None:
        self._write_json(self.key(GUEST_SESSIONS_KEY), [s.to_dict() for s in sessions])

    def add_session(self, session: Session) -> None:
        self.save_sessions([session] + self.load_sessions())

    # ---------- bankroll ----------

    def load_bankroll(self, sessions: Optional[List[Session]] = None) -> Optional[BankrollSnapshot]:
        raw = self._read_json(self.key(GUEST_BANKROLL_KEY))
        if not isinstance(raw, dict):
            return None
        try:
            starting = float(raw["starting_amount"])
            goal = float(raw["goal_amount"])
        except (KeyError, TypeError, ValueError) as e:
            print(f"[guest_store.load_bankroll] unusable bankroll payload: {e!r}")
            return None
        if sessions is None:
            sessions = self.load_sessions()
        return snapshot_from(starting, goal, sessions)

    def save_bankroll(self, snapshot: BankrollSnapshot) -> None:
        self._write_json(self.key(GUEST_BANKROLL_KEY), snapshot.to_dict())

    # ---------- lifecycle ----------

    def has_data(self) -> bool:
        return bool(self.load_sessions()) or self._read_json(self.key(GUEST_BANKROLL_KEY)) is not None

    def clear(self) -> None:
        try:
            self.kv.delete(self.key(GUEST_SESSIONS_KEY))
            self.kv.delete(self.key(GUEST_BANKROLL_KEY))
        except OSError as e:
            raise StorageError(f"Could not clear guest data: {e}") from e
