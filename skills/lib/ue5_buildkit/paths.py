#!/usr/bin/env python3
"""
UE5 Build Kit - Path and Discovery Utilities

Filesystem-based discovery of plugin roots and engine scripts.
"""

import sys
from pathlib import Path
from typing import List, Optional

from .errors import AmbiguousMatchError, NotFoundError

PLUGIN_DESCRIPTOR_GLOB = "*.uplugin"


def get_script_dir() -> Path:
    """Directory of the script that was invoked (last-resort plugin search root)."""
    if sys.argv and sys.argv[0]:
        return Path(sys.argv[0]).resolve().parent
    return Path(__file__).resolve().parent


def find_plugin_descriptor_upward(start_dir: Path) -> Optional[Path]:
    """
    Find a .uplugin file by searching upward from start_dir.

    Args:
        start_dir: Starting directory for search

    Returns:
        Path to the single .uplugin in the nearest directory that has one,
        or None if no ancestor has one

    Raises:
        AmbiguousMatchError: the nearest directory holds several descriptors
    """
    current = Path(start_dir).resolve()

    while True:
        try:
            descriptors = sorted(current.glob(PLUGIN_DESCRIPTOR_GLOB))
        except OSError:
            descriptors = []

        if len(descriptors) == 1:
            return descriptors[0]
        if len(descriptors) > 1:
            raise AmbiguousMatchError(str(current), [d.name for d in descriptors])

        parent = current.parent
        if parent == current:
            return None
        current = parent


def plugin_search_roots(
    plugin_dir: Optional[Path] = None, script_dir: Optional[Path] = None
) -> List[Path]:
    """
    Candidate roots for the plugin search, in priority order.

    An explicit plugin_dir is the only candidate. Otherwise the current
    working directory is tried, then the script directory.
    """
    if plugin_dir is not None:
        return [Path(plugin_dir)]
    return [Path.cwd(), Path(script_dir) if script_dir else get_script_dir()]


def find_plugin_descriptor(
    plugin_dir: Optional[Path] = None, script_dir: Optional[Path] = None
) -> Path:
    """
    Locate the plugin descriptor for a packaging run.

    Raises:
        NotFoundError: no candidate root has a .uplugin in its ancestry
    """
    roots = plugin_search_roots(plugin_dir, script_dir)
    for root in roots:
        descriptor = find_plugin_descriptor_upward(root)
        if descriptor is not None:
            return descriptor

    searched = ", ".join(str(r) for r in roots)
    raise NotFoundError(f"No .uplugin file found in or above: {searched}")


def engine_batch_dir(engine_root: Path) -> Path:
    return Path(engine_root) / "Engine" / "Build" / "BatchFiles"
