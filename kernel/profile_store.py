# kernel/profile_store.py
"""
VERA Profile Store

Persists UserNervousSystemProfile records over a KVStore.

Retention (from consent.data_retention):
    none       -> kept in process memory for the session TTL only, never
                  written to the KV backend
    session    -> expires with the session TTL
    7days      -> 7 day TTL
    30days     -> 30 day TTL
    permanent  -> no expiry

Dormancy decay:
    On load, a profile unseen for longer than decay_after_days loses
    decay_step on every relationship dial per full dormant period, floored
    at the default starting value. Decay never runs inside a session.

Corrupt or undecodable records are logged and replaced by a fresh default
profile; a storage problem never reaches the user.
"""

from __future__ import annotations

import sys
import threading
import weakref
from dataclasses import fields
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from system.config import Config
from kernel.utils.kv_store import KVStore
from kernel.utils.kv_memory import MemoryKVStore
from kernel.nervous_profile import (
    ConsentBoundaries,
    DEFAULT_RELATIONSHIP,
    RETENTION_POLICIES,
    UserNervousSystemProfile,
    create_default_profile,
    touch,
)


PROFILE_KEY_PREFIX = "profile"

DAY_SECONDS = 86400

RETENTION_TTL_SECONDS: Dict[str, Optional[int]] = {
    "session": None,  # resolved from Config.session_ttl_seconds
    "7days": 7 * DAY_SECONDS,
    "30days": 30 * DAY_SECONDS,
    "permanent": 0,
}


class ProfileStoreError(Exception):
    """Raised for invalid profile-store operations (bad consent changes)."""
    pass


def _parse_ts(value: str) -> Optional[datetime]:
    try:
        ts = datetime.fromisoformat(value)
    except (TypeError, ValueError):
        return None
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


class ProfileStore:
    """
    Profile persistence with retention, decay and per-user locking.

    Usage:
        store = ProfileStore(get_kv_store(), config)
        with store.user_lock(user_id):
            profile = store.get_or_create(user_id)
            ...mutate...
            store.save(profile)
    """

    def __init__(self, kv: KVStore, config: Optional[Config] = None):
        self.kv = kv
        self.config = config
        # Profiles with data_retention="none", kept only for the session TTL
        self._volatile = MemoryKVStore()
        # A lock lives as long as some caller holds it
        self._locks: "weakref.WeakValueDictionary[str, threading.RLock]" = weakref.WeakValueDictionary()
        self._locks_guard = threading.Lock()

    # -------------------------------------------------------------------------
    # Settings
    # -------------------------------------------------------------------------

    @property
    def decay_after_days(self) -> int:
        return self.config.decay_after_days if self.config else 30

    @property
    def decay_step(self) -> int:
        return self.config.decay_step if self.config else 2

    @property
    def session_ttl(self) -> int:
        return self.config.session_ttl_seconds if self.config else 3600

    def _key(self, user_id: str) -> str:
        return f"{PROFILE_KEY_PREFIX}:{user_id}"

    def user_lock(self, user_id: str) -> threading.RLock:
        with self._locks_guard:
            lock = self._locks.get(user_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[user_id] = lock
            return lock

    def ttl_for(self, profile: UserNervousSystemProfile) -> Optional[int]:
        """KV TTL in seconds for the profile's retention policy (None = memory only)."""
        retention = profile.consent.data_retention
        if retention == "none":
            return None
        if retention == "session":
            return self.session_ttl
        return RETENTION_TTL_SECONDS.get(retention, RETENTION_TTL_SECONDS["30days"])

    # -------------------------------------------------------------------------
    # Load / Save
    # -------------------------------------------------------------------------

    def _read(self, user_id: str) -> Optional[Dict[str, Any]]:
        key = self._key(user_id)
        raw = self._volatile.get_json(key)
        if raw is not None:
            return raw
        try:
            return self.kv.get_json(key)
        except Exception as e:
            print(f"[ProfileStore] read failed user={user_id}: {e}", file=sys.stderr, flush=True)
            return None

    def load(self, user_id: str) -> Optional[UserNervousSystemProfile]:
        """Load a stored profile, or None if absent or corrupt."""
        raw = self._read(user_id)
        if raw is None:
            return None
        try:
            profile = UserNervousSystemProfile.from_dict(raw)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            print(
                f"[ProfileStore] corrupt profile user={user_id}, using defaults: {e}",
                file=sys.stderr,
                flush=True,
            )
            return None
        if profile.user_id != user_id:
            print(f"[ProfileStore] profile id mismatch for user={user_id}, using defaults",
                  file=sys.stderr, flush=True)
            return None
        return profile

    def get_or_create(self, user_id: str, name: Optional[str] = None) -> UserNervousSystemProfile:
        """Read the user's profile, creating a default one on first contact."""
        with self.user_lock(user_id):
            profile = self.load(user_id)
            if profile is None:
                profile = create_default_profile(user_id, name)
                print(f"[ProfileStore] created profile user={user_id}", flush=True)
                return profile

            if name and profile.name == "friend":
                profile.name = name

            periods = self.apply_decay(profile)
            if periods:
                print(f"[ProfileStore] decay user={user_id} periods={periods}", flush=True)
                touch(profile)
                self.save(profile)
            return profile

    def save(self, profile: UserNervousSystemProfile) -> bool:
        """Persist the profile according to its retention policy."""
        with self.user_lock(profile.user_id):
            key = self._key(profile.user_id)
            data = profile.to_dict()
            ttl = self.ttl_for(profile)

            if ttl is None:
                self._volatile.purge_expired()
                self._volatile.set_json(key, data, ttl_seconds=self.session_ttl)
                try:
                    self.kv.delete(key)
                except Exception as e:
                    print(f"[ProfileStore] durable delete failed user={profile.user_id}: {e}",
                          file=sys.stderr, flush=True)
                return True

            self._volatile.delete(key)
            try:
                return self.kv.set_json(key, data, ttl_seconds=ttl)
            except Exception as e:
                print(f"[ProfileStore] save failed user={profile.user_id}: {e}", file=sys.stderr, flush=True)
                return False

    def delete(self, user_id: str) -> bool:
        """Forget a user entirely."""
        with self.user_lock(user_id):
            key = self._key(user_id)
            removed = self._volatile.delete(key)
            try:
                removed = self.kv.delete(key) or removed
            except Exception as e:
                print(f"[ProfileStore] delete failed user={user_id}: {e}", file=sys.stderr, flush=True)
            print(f"[ProfileStore] deleted user={user_id} existed={removed}", flush=True)
            return removed

    # -------------------------------------------------------------------------
    # Consent
    # -------------------------------------------------------------------------

    def update_consent(self, user_id: str, changes: Dict[str, Any]) -> UserNervousSystemProfile:
        """
        Apply an explicit consent change from the user.

        The only code path that writes consent fields. Flags must be real
        booleans; strings like "false" are rejected rather than coerced.

        Raises:
            ProfileStoreError: unknown field, non-boolean flag or invalid retention policy
        """
        if not isinstance(changes, dict):
            raise ProfileStoreError("Consent changes must be an object")

        allowed = {f.name for f in fields(ConsentBoundaries)}
        unknown = set(changes) - allowed
        if unknown:
            raise ProfileStoreError(f"Unknown consent fields: {sorted(unknown)}")

        for name, value in changes.items():
            if name == "data_retention":
                if not isinstance(value, str) or value not in RETENTION_POLICIES:
                    raise ProfileStoreError(
                        f"Invalid data_retention {value!r}; expected one of {list(RETENTION_POLICIES)}"
                    )
            elif not isinstance(value, bool):
                raise ProfileStoreError(f"Consent field {name!r} must be true or false, got {value!r}")

        with self.user_lock(user_id):
            profile = self.get_or_create(user_id)
            for name, value in changes.items():
                setattr(profile.consent, name, value)
            self.save(profile)

        print(f"[ProfileStore] consent updated user={user_id} fields={sorted(changes)}", flush=True)
        return profile

    # -------------------------------------------------------------------------
    # Decay
    # -------------------------------------------------------------------------

    def apply_decay(self, profile: UserNervousSystemProfile, now: Optional[datetime] = None) -> int:
        """
        Relax relationship dials for a dormant profile.

        Returns the number of full dormant periods applied (0 = untouched).
        """
        if self.decay_after_days <= 0 or self.decay_step <= 0:
            return 0

        last_seen = _parse_ts(profile.last_seen)
        if last_seen is None:
            return 0

        now = now or datetime.now(timezone.utc)
        dormant_days = (now - last_seen).days
        periods = dormant_days // self.decay_after_days
        if periods <= 0:
            return 0

        loss = periods * self.decay_step
        for dial, current in profile.relationship_depth.items():
            floor = min(current, DEFAULT_RELATIONSHIP.get(dial, 0))
            profile.relationship_depth[dial] = max(floor, current - loss)
        return periods


__all__ = [
    "ProfileStore",
    "ProfileStoreError",
    "RETENTION_TTL_SECONDS",
]
