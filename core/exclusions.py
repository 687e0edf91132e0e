"""Persistence adapters for the user's hidden-merchant set."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Iterable, Protocol

from core.logging_setup import get_logger

__all__ = [
    "ExclusionStoreError",
    "ExclusionStore",
    "InMemoryExclusionStore",
    "JsonExclusionStore",
]

logger = get_logger("cashflow.exclusions")


class ExclusionStoreError(RuntimeError):
    """Raised when the exclusion set cannot be read or written."""


class ExclusionStore(Protocol):
    def get(self) -> frozenset[str]: ...

    def add(self, merchant_key: str) -> None: ...

    def remove(self, merchant_key: str) -> None: ...


class InMemoryExclusionStore:
    """Process-local exclusion set, used by tests and ephemeral sessions."""

    def __init__(self, keys: Iterable[str] = ()) -> None:
        self._keys = set(keys)

    def get(self) -> frozenset[str]:
        return frozenset(self._keys)

    def add(self, merchant_key: str) -> None:
        self._keys.add(merchant_key)

    def remove(self, merchant_key: str) -> None:
        self._keys.discard(merchant_key)


class JsonExclusionStore:
    """Exclusion set stored as a sorted JSON list on disk.

    A missing file reads as the empty set. Writes go to a sibling temporary
    file that then replaces the original, so a failed write leaves the
    previous contents intact.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def get(self) -> frozenset[str]:
        if not self.path.exists():
            return frozenset()
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise ExclusionStoreError(f"Could not read exclusions from {self.path}: {exc}") from exc
        if not isinstance(raw, list) or not all(isinstance(item, str) for item in raw):
            raise ExclusionStoreError(f"Exclusions file {self.path} must hold a list of strings")
        return frozenset(raw)

    def add(self, merchant_key: str) -> None:
        keys = set(self.get())
        if merchant_key in keys:
            return
        keys.add(merchant_key)
        self._write(keys)

    def remove(self, merchant_key: str) -> None:
        keys = set(self.get())
        if merchant_key not in keys:
            return
        keys.discard(merchant_key)
        self._write(keys)

    def _write(self, keys: set[str]) -> None:
        tmp_path = self.path.with_name(f"{self.path.name}.tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(sorted(keys), indent=2), encoding="utf-8")
            os.replace(tmp_path, self.path)
        except OSError as exc:
            raise ExclusionStoreError(f"Could not write exclusions to {self.path}: {exc}") from exc
        logger.debug("Stored %d excluded merchant keys in %s", len(keys), self.path)
