"""Persistence of per-TV connection settings.

Each TV type has one blob, keyed by its STORAGE_KEYS entry. Adapters write
through a store when the TV issues a pairing token or client key; callers read
it back to build the next connection config.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Protocol

import yaml

from tv_remote.const import STORAGE_KEYS, TV_REMOTE_CONFIG_FILE
from tv_remote.logging_abstraction import get_logger

logger = get_logger(__name__)


def storage_key(tv_type: str) -> str | None:
    return STORAGE_KEYS.get(str(tv_type))


class ConfigStore(Protocol):
    def load(self, tv_type: str) -> dict[str, Any] | None: ...

    def save(self, tv_type: str, data: dict[str, Any]) -> None: ...

    def clear(self) -> None: ...


class MemoryConfigStore:
    """Store that lives only as long as the process."""

    def __init__(self) -> None:
        self.blobs: dict[str, dict[str, Any]] = {}

    def load(self, tv_type: str) -> dict[str, Any] | None:
        key = storage_key(tv_type)
        if key is None or key not in self.blobs:
            return None
        return dict(self.blobs[key])

    def save(self, tv_type: str, data: dict[str, Any]) -> None:
        key = storage_key(tv_type)
        if key is None:
            return
        self.blobs[key] = dict(data)

    def clear(self) -> None:
        self.blobs.clear()


class YamlConfigStore:
    """All per-TV blobs in one YAML mapping on disk.

    A missing, unreadable or malformed file loads as "nothing stored"; a write
    failure raises OSError to the caller.
    """

    def __init__(self, path: str | Path = TV_REMOTE_CONFIG_FILE) -> None:
        self.path: Path = Path(path)

    def _read_all(self) -> dict[str, Any]:
        try:
            with self.path.open() as f:
                data = yaml.safe_load(f)
        except FileNotFoundError:
            return {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning("Failed to read config file %s: %s", self.path, e, extra={"path": str(self.path)})
            return {}
        return data if isinstance(data, dict) else {}

    def load(self, tv_type: str) -> dict[str, Any] | None:
        key = storage_key(tv_type)
        if key is None:
            return None
        blob = self._read_all().get(key)
        return dict(blob) if isinstance(blob, dict) else None

    def save(self, tv_type: str, data: dict[str, Any]) -> None:
        key = storage_key(tv_type)
        if key is None:
            return
        blobs = self._read_all()
        blobs[key] = dict(data)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w") as f:
            _ = f.write(yaml.safe_dump(blobs, default_flow_style=False))
        logger.debug("Saved %s config to %s", tv_type, self.path, extra={"storage_key": key})

    def clear(self) -> None:
        blobs = self._read_all()
        if not blobs:
            return
        for key in STORAGE_KEYS.values():
            blobs.pop(key, None)
        with self.path.open("w") as f:
            _ = f.write(yaml.safe_dump(blobs, default_flow_style=False))
