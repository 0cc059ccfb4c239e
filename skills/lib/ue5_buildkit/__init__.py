#!/usr/bin/env python3
"""
UE5 Build Kit - Engine Registry, Toolchains and Plugin Packaging

Shared library behind the ue5-engine-manager and ue5-plugin-packager skills.

Usage:
    import sys
    sys.path.insert(0, str(Path(__file__).parent.parent.parent / "lib"))
    from ue5_buildkit import get_store, EngineRegistry, BuildOrchestrator
"""

from .config import ConfigStore, Configuration, get_store
from .errors import (
    AmbiguousMatchError,
    BuildKitError,
    ConfigCorruptionError,
    ExternalToolFailure,
    NotFoundError,
)
from .orchestrator import BuildOrchestrator, BuildRequest, BuildState, Platform
from .registry import EngineInstall, EngineRegistry, scan_source_directory
from .toolchains import InstallPolicy, ToolchainCatalog, ToolchainInstaller
from .versions import EngineVersion, resolve_all, resolve_unique

__version__ = "0.1.0"

__all__ = [
    "ConfigStore",
    "Configuration",
    "get_store",
    "AmbiguousMatchError",
    "BuildKitError",
    "ConfigCorruptionError",
    "ExternalToolFailure",
    "NotFoundError",
    "BuildOrchestrator",
    "BuildRequest",
    "BuildState",
    "Platform",
    "EngineInstall",
    "EngineRegistry",
    "scan_source_directory",
    "InstallPolicy",
    "ToolchainCatalog",
    "ToolchainInstaller",
    "EngineVersion",
    "resolve_all",
    "resolve_unique",
]
