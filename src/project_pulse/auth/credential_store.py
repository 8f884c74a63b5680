"""
Credential Store for Project Pulse.

This module persists the single OAuth token record of the running client.
Storage goes through a KeyValueStore capability so the store can use a local
JSON directory in production and memory in tests.
"""

import json
import logging
import math
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..core.clock import Clock, SystemClock
from ..utils.constants import TOKEN_STORAGE_KEY
from ..utils.errors import MalformedStoredCredentialError

logger = logging.getLogger(__name__)

# 9999-12-31T23:59:59.999Z, the last instant datetime can represent
MAX_EXPIRY_EPOCH_MILLIS = 253_402_300_799_999


@dataclass(frozen=True)
class CredentialRecord:
    """An OAuth token record.

    Attributes:
        access_token: Bearer token for Google API calls.
        refresh_token: Long-lived refresh token, when Google issued one.
        expiry_epoch_millis: Access token expiry in epoch milliseconds.
    """

    access_token: str
    refresh_token: Optional[str]
    expiry_epoch_millis: int

    def is_expired(self, now_millis: int) -> bool:
        return self.expiry_epoch_millis <= now_millis

    def to_dict(self) -> Dict[str, Any]:
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "expiry_date": self.expiry_epoch_millis,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "CredentialRecord":
        """Decode a stored record.

        Raises:
            MalformedStoredCredentialError: If fields are missing or mistyped.
        """
        if not isinstance(data, dict):
            raise MalformedStoredCredentialError("Stored credential is not an object")

        access_token = data.get("access_token")
        refresh_token = data.get("refresh_token")
        expiry = data.get("expiry_date")

        if not isinstance(access_token, str) or not access_token:
            raise MalformedStoredCredentialError("Stored credential has no access token")
        if refresh_token is not None and not isinstance(refresh_token, str):
            raise MalformedStoredCredentialError("Stored refresh token is not a string")
        if isinstance(expiry, bool) or not isinstance(expiry, (int, float)):
            raise MalformedStoredCredentialError("Stored credential has no expiry")
        if isinstance(expiry, float) and not math.isfinite(expiry):
            raise MalformedStoredCredentialError("Stored credential expiry is not finite")
        if not 0 <= expiry <= MAX_EXPIRY_EPOCH_MILLIS:
            raise MalformedStoredCredentialError("Stored credential expiry is out of range")

        return cls(
            access_token=access_token,
            refresh_token=refresh_token or None,
            expiry_epoch_millis=int(expiry),
        )


class KeyValueStore(ABC):
    """Abstract base class for durable client-side key-value storage."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Get the raw value stored under a key."""
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store a raw value under a key, replacing any prior value."""
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove a key. Missing keys are ignored."""
        pass


class InMemoryKeyValueStore(KeyValueStore):
    """Key-value store that lives only as long as the process."""

    def __init__(self) -> None:
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileKeyValueStore(KeyValueStore):
    """Key-value store that keeps one file per key in a local directory."""

    def __init__(self, base_dir: str) -> None:
        """
        Initialize the local store.

        Args:
            base_dir: Directory holding one ``<key>.json`` file per key.
        """
        self.base_dir = base_dir
        self._ensure_dir_exists()
        logger.info(f"JsonFileKeyValueStore initialized: {base_dir}")

    def _ensure_dir_exists(self) -> None:
        """Ensure the storage directory exists."""
        if not os.path.exists(self.base_dir):
            os.makedirs(self.base_dir, exist_ok=True)
            logger.info(f"Created storage directory: {self.base_dir}")

    def _path(self, key: str) -> str:
        return os.path.join(self.base_dir, f"{key}.json")

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not os.path.exists(path):
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                return f.read()
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Error reading {path}: {e}")
            return None

    def set(self, key: str, value: str) -> None:
        self._ensure_dir_exists()
        path = self._path(key)
        tmp_path = f"{path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            f.write(value)
        os.chmod(tmp_path, 0o600)
        os.replace(tmp_path, path)

    def delete(self, key: str) -> None:
        path = self._path(key)
        if os.path.exists(path):
            os.remove(path)


class CredentialStore:
    """Persists, loads and evicts the client's credential record."""

    def __init__(
        self,
        storage: KeyValueStore,
        clock: Optional[Clock] = None,
        key: str = TOKEN_STORAGE_KEY,
    ) -> None:
        self._storage = storage
        self._clock = clock or SystemClock()
        self._key = key

    def save(self, record: CredentialRecord) -> None:
        """Persist a record, overwriting any prior one."""
        self._storage.set(self._key, json.dumps(record.to_dict()))
        logger.info("Stored credentials")

    def load(self) -> Optional[CredentialRecord]:
        """
        Load the stored record.

        Expired records are cleared and reported as absent. Malformed data is
        treated exactly like absent data.

        Returns:
            The stored CredentialRecord, or None.
        """
        raw = self._storage.get(self._key)
        if raw is None:
            logger.debug("No stored credentials found")
            return None

        try:
            try:
                data = json.loads(raw)
            except ValueError as e:
                raise MalformedStoredCredentialError("Stored credential is not valid JSON", e)
            record = CredentialRecord.from_dict(data)
        except MalformedStoredCredentialError as e:
            logger.warning(f"Ignoring malformed stored credentials: {e.message}")
            return None

        if record.is_expired(self._clock.now_millis()):
            logger.warning("Stored credentials are expired, clearing them")
            self.clear()
            return None

        logger.debug("Loaded stored credentials")
        return record

    def clear(self) -> None:
        """Remove any persisted record. Idempotent."""
        try:
            self._storage.delete(self._key)
        except OSError as e:
            logger.error(f"Error deleting stored credentials: {e}")
