"""
UE5 Build Kit - Engine Registry

Known engine installations: folders found under the configured source
directory plus engines the user added by hand.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

from . import versions
from .versions import EngineVersion

logger = logging.getLogger(__name__)

SOURCE_SCAN = "scan"
SOURCE_CUSTOM = "custom"


@dataclass(frozen=True)
class EngineInstall:
    version: EngineVersion
    path: Path
    source: str = SOURCE_CUSTOM

    def __str__(self):
        return f"{self.version} ({self.path})"


@dataclass
class ScanResult:
    """Outcome of a directory scan: parsed engines and skipped folders."""

    engines: List[EngineInstall] = field(default_factory=list)
    skipped: List[Tuple[str, str]] = field(default_factory=list)


def scan_source_directory(path: Path) -> ScanResult:
    """
    List engine installs in the immediate subdirectories of path.

    Folder names are parsed as versions ("5.4.2", "UE_5.3"). Anything that
    does not parse is reported in ScanResult.skipped and logged as a warning.

    Args:
        path: Directory holding one folder per engine version

    Returns:
        ScanResult; empty if the directory is missing or unreadable
    """
    result = ScanResult()
    root = Path(path)

    try:
        entries = sorted(p for p in root.iterdir() if p.is_dir())
    except OSError as e:
        logger.warning(f"Cannot scan source directory {root}: {e}")
        return result

    for entry in entries:
        try:
            version = EngineVersion.parse(entry.name)
        except ValueError:
            result.skipped.append((entry.name, "folder name is not a version"))
            continue
        result.engines.append(EngineInstall(version, entry, SOURCE_SCAN))

    for name, reason in result.skipped:
        logger.warning(f"Skipping '{name}' in {root}: {reason}")

    return result


class EngineRegistry:
    """
    In-memory set of engine installs with unique versions.

    The first install registered for a version wins; later duplicates are
    dropped with a warning.
    """

    def __init__(self):
        self._engines: List[EngineInstall] = []

    @classmethod
    def from_config(cls, config, scan: bool = True) -> "EngineRegistry":
        """
        Build a registry from a Configuration: custom entries first, then the
        scanned source directory (if set and scan is True).
        """
        registry = cls()
        for install in config.engines:
            registry.register(install)
        if scan and config.source_directory:
            registry.scan(config.source_directory)
        return registry

    def __len__(self):
        return len(self._engines)

    def find(self, version: EngineVersion) -> Optional[EngineInstall]:
        return next((e for e in self._engines if e.version == version), None)

    def register(self, install: EngineInstall) -> bool:
        existing = self.find(install.version)
        if existing is not None:
            logger.warning(
                f"Engine {install.version} already registered at {existing.path}, "
                f"ignoring {install.path}"
            )
            return False
        self._engines.append(install)
        return True

    def scan(self, path: Path) -> ScanResult:
        result = scan_source_directory(path)
        for install in result.engines:
            self.register(install)
        return result

    def add_custom(self, version, path: Path) -> bool:
        """
        Add a manually installed engine.

        Rejected (warning, no change) when an existing entry already matches
        the version, e.g. adding "5.4" while 5.4.2 is known.

        Returns:
            True if the engine was added
        """
        selector = version
        if not isinstance(version, EngineVersion):
            selector = versions.VersionSelector.parse(str(version))
            version = EngineVersion.parse(str(version))

        clash = versions.match_versions(selector, self._engines)
        if clash:
            logger.warning(
                f"Engine {version} already registered: {', '.join(str(e) for e in clash)}"
            )
            return False

        self._engines.append(EngineInstall(version, Path(path), SOURCE_CUSTOM))
        return True

    def all_engines(self, reverse: bool = False) -> List[EngineInstall]:
        """All engines, newest first (oldest first with reverse=True)."""
        return versions.sort_versions(self._engines, reverse=not reverse)

    def custom_engines(self) -> List[EngineInstall]:
        return [e for e in self._engines if e.source == SOURCE_CUSTOM]

    def resolve(self, selector) -> EngineInstall:
        return versions.resolve_unique(selector, self._engines, what="engine")

    def resolve_path(self, selector) -> Path:
        """
        Path of the single engine matching selector.

        Raises:
            NotFoundError: no engine matches (including an empty registry)
            AmbiguousMatchError: several engines match
        """
        return self.resolve(selector).path

    def resolve_all(self, selector) -> List[EngineInstall]:
        """Every engine matching selector, newest first; NotFoundError if none."""
        return versions.resolve_all(selector, self._engines, what="engine")
