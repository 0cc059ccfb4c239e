"""
UE5 Build Kit - Configuration Store

Persists custom engine entries and the engine source directory to a per-user
JSON file:

    {
        "Engines": [{"Version": "5.4.2", "Path": "D:/Engines/5.4.2"}],
        "SourceDirectory": "D:/UnrealSource"
    }

Scanned engines are never written; they are rediscovered on every run.
"""

import json
import logging
import os
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from .errors import BuildKitError, ConfigCorruptionError
from .registry import SOURCE_CUSTOM, EngineInstall
from .versions import EngineVersion

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "UE5_BUILDKIT_CONFIG"


def get_default_config_path() -> Path:
    """
    Get the config file path from UE5_BUILDKIT_CONFIG or the user profile.

    Returns:
        Path to config.json (may not exist yet)
    """
    if CONFIG_ENV_VAR in os.environ:
        return Path(os.environ[CONFIG_ENV_VAR])
    return Path.home() / ".ue5-buildkit" / "config.json"


@dataclass
class Configuration:
    engines: List[EngineInstall] = field(default_factory=list)
    source_directory: Optional[Path] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "Engines": [
                {"Version": str(e.version), "Path": str(e.path)} for e in self.engines
            ],
            "SourceDirectory": str(self.source_directory) if self.source_directory else "",
        }

    @classmethod
    def from_dict(cls, data: Any) -> "Configuration":
        """
        Rebuild a Configuration from parsed JSON.

        Raises:
            ValueError: on any malformed field; nothing is silently dropped
        """
        if not isinstance(data, dict):
            raise ValueError("top level must be a JSON object")

        raw_engines = data.get("Engines", [])
        if not isinstance(raw_engines, list):
            raise ValueError("'Engines' must be a list")

        engines = []
        for index, entry in enumerate(raw_engines):
            if not isinstance(entry, dict):
                raise ValueError(f"Engines[{index}] must be an object")
            version = entry.get("Version")
            path = entry.get("Path")
            if not isinstance(version, str) or not isinstance(path, str) or not path:
                raise ValueError(f"Engines[{index}] needs string 'Version' and 'Path'")
            try:
                parsed = EngineVersion.parse(version)
            except ValueError as e:
                raise ValueError(f"Engines[{index}]: {e}") from e
            engines.append(EngineInstall(parsed, Path(path), SOURCE_CUSTOM))

        source_directory = data.get("SourceDirectory", "")
        if not isinstance(source_directory, str):
            raise ValueError("'SourceDirectory' must be a string")

        return cls(engines, Path(source_directory) if source_directory else None)


class ConfigLockTimeout(BuildKitError):
    """Another process held the config lock for too long."""


class _LockFile:
    """Exclusive lock held by creating <config>.lock with O_EXCL."""

    POLL_INTERVAL = 0.1
    STALE_AFTER = 600

    def __init__(self, path: Path, timeout: float):
        self.path = path
        self.timeout = timeout
        self._fd: Optional[int] = None

    def acquire(self):
        deadline = time.monotonic() + self.timeout
        while True:
            try:
                self._fd = os.open(str(self.path), os.O_CREAT | os.O_EXCL | os.O_WRONLY)
                os.write(self._fd, str(os.getpid()).encode())
                return
            except FileExistsError:
                if self._is_stale():
                    logger.warning(f"Removing stale lock {self.path}")
                    self._remove()
                    continue
                if time.monotonic() >= deadline:
                    raise ConfigLockTimeout(
                        f"Timed out waiting for {self.path} (is another instance running?)"
                    )
                time.sleep(self.POLL_INTERVAL)

    def release(self):
        if self._fd is not None:
            os.close(self._fd)
            self._fd = None
            self._remove()

    def _is_stale(self) -> bool:
        try:
            return time.time() - self.path.stat().st_mtime > self.STALE_AFTER
        except FileNotFoundError:
            return False

    def _remove(self):
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass


class ConfigStore:
    """
    Loads and saves the Configuration at a fixed path.

    The ``config`` property loads lazily and caches for the life of the store.
    Use ``transaction()`` for load-mutate-save so concurrent invocations do
    not overwrite each other.
    """

    LOCK_TIMEOUT = 10.0

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else get_default_config_path()
        self._config: Optional[Configuration] = None

    @property
    def lock_path(self) -> Path:
        return self.path.with_name(self.path.name + ".lock")

    @property
    def config(self) -> Configuration:
        if self._config is None:
            self._config = self.load()
        return self._config

    def load(self) -> Configuration:
        """
        Read the config file, creating a default one if it does not exist.

        Raises:
            ConfigCorruptionError: unreadable file, invalid JSON or bad entries
        """
        if not self.path.exists():
            logger.info(f"Creating default configuration at {self.path}")
            config = Configuration()
            self.save(config)
            return config

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigCorruptionError(self.path, f"JSON parse error: {e}") from e
        except UnicodeDecodeError as e:
            raise ConfigCorruptionError(self.path, f"not UTF-8 text: {e}") from e
        except OSError as e:
            raise ConfigCorruptionError(self.path, f"read failed: {e}") from e

        try:
            config = Configuration.from_dict(data)
        except ValueError as e:
            raise ConfigCorruptionError(self.path, str(e)) from e

        self._config = config
        return config

    def save(self, config: Configuration):
        """Overwrite the config file atomically (temp file + os.replace)."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self.path.with_name(self.path.name + ".tmp")
        with open(temp_path, "w", encoding="utf-8") as f:
            json.dump(config.to_dict(), f, indent=4)
            f.write("\n")
        os.replace(temp_path, self.path)
        self._config = config
        logger.debug(f"Saved configuration to {self.path}")

    @contextmanager
    def transaction(self, timeout: Optional[float] = None) -> Iterator[Configuration]:
        """
        Lock, load, yield the Configuration, then save it.

        The save is skipped if the block raises.
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        lock = _LockFile(self.lock_path, self.LOCK_TIMEOUT if timeout is None else timeout)
        lock.acquire()
        try:
            config = self.load()
            yield config
            self.save(config)
        finally:
            lock.release()


_store: Optional[ConfigStore] = None


def get_store(path: Optional[Path] = None) -> ConfigStore:
    """Process-wide ConfigStore; a different path replaces the cached one."""
    global _store
    if _store is None or (path is not None and Path(path) != _store.path):
        _store = ConfigStore(path)
    return _store
