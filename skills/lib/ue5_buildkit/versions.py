"""
UE5 Build Kit - Version Parsing and Matching

Engine versions are written loosely by users ("5.5", "5.4.2-prerelease",
"UE_5.3"). This module turns them into comparable values and matches
selectors against installed engines or toolchain releases.

Ordering: major, minor, patch, then a prerelease sorts *before* the release
it precedes (5.5.0-preview < 5.5.0). Two prereleases of the same release
compare lexically by tag. Sorting and matching both use this order.
"""

import re
from dataclasses import dataclass
from functools import total_ordering
from typing import Callable, Iterable, List, Optional, Tuple, TypeVar

from .errors import AmbiguousMatchError, NotFoundError

T = TypeVar("T")

_VERSION_RE = re.compile(
    r"^(?:UE[_-]?)?(\d+)\.(\d+)(?:\.(\d+))?(?:-([0-9A-Za-z][0-9A-Za-z.\-]*))?$",
    re.IGNORECASE,
)


def _split(text: str) -> Tuple[int, int, Optional[int], Optional[str]]:
    match = _VERSION_RE.match(text.strip())
    if not match:
        raise ValueError(f"Not a version: '{text}'")
    major, minor, patch, prerelease = match.groups()
    return (
        int(major),
        int(minor),
        int(patch) if patch is not None else None,
        prerelease,
    )


@total_ordering
@dataclass(frozen=True, eq=True)
class EngineVersion:
    """A concrete major.minor.patch[-prerelease] version."""

    major: int
    minor: int
    patch: int = 0
    prerelease: Optional[str] = None

    @classmethod
    def parse(cls, text: str) -> "EngineVersion":
        """
        Parse a version string or engine folder name.

        Args:
            text: e.g. "5.4", "5.4.2", "5.5.0-preview", "UE_5.3"

        Returns:
            EngineVersion with a missing patch treated as 0

        Raises:
            ValueError: if the text is not a version
        """
        major, minor, patch, prerelease = _split(text)
        return cls(major, minor, patch or 0, prerelease)

    def truncate(self) -> Tuple[int, int]:
        """Major/minor pair, dropping patch and any prerelease suffix."""
        return (self.major, self.minor)

    def sort_key(self) -> tuple:
        # A release (no tag) sorts after every prerelease of the same number
        return (
            self.major,
            self.minor,
            self.patch,
            0 if self.prerelease else 1,
            self.prerelease or "",
        )

    def __lt__(self, other):
        if not isinstance(other, EngineVersion):
            return NotImplemented
        return self.sort_key() < other.sort_key()

    def __str__(self):
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            text += f"-{self.prerelease}"
        return text


@dataclass(frozen=True)
class VersionSelector:
    """
    A partially specified version used for lookups.

    Only the components the user typed take part in matching, so "5.5"
    matches 5.5.0 and 5.5.1-prerelease but never 5.50.0.
    """

    major: int
    minor: int
    patch: Optional[int] = None
    prerelease: Optional[str] = None
    text: str = ""

    @classmethod
    def parse(cls, text: str) -> "VersionSelector":
        major, minor, patch, prerelease = _split(text)
        return cls(major, minor, patch, prerelease, text.strip())

    def matches(self, version: EngineVersion) -> bool:
        if (self.major, self.minor) != version.truncate():
            return False
        if self.patch is not None and self.patch != version.patch:
            return False
        if self.prerelease is not None and self.prerelease != version.prerelease:
            return False
        return True

    def is_exact(self, version: EngineVersion) -> bool:
        """True when the selector names this version completely."""
        return (
            self.patch is not None
            and self.matches(version)
            and self.prerelease == version.prerelease
        )

    def __str__(self):
        return self.text or f"{self.major}.{self.minor}"


def version_of(candidate) -> EngineVersion:
    """Default key: the candidate itself or its ``version`` attribute."""
    if isinstance(candidate, EngineVersion):
        return candidate
    return candidate.version


def _as_selector(selector) -> VersionSelector:
    if isinstance(selector, VersionSelector):
        return selector
    if isinstance(selector, EngineVersion):
        return VersionSelector(
            selector.major, selector.minor, selector.patch, selector.prerelease, str(selector)
        )
    try:
        return VersionSelector.parse(str(selector))
    except ValueError as e:
        raise NotFoundError(str(e)) from e


def sort_versions(
    candidates: Iterable[T],
    key: Callable[[T], EngineVersion] = version_of,
    reverse: bool = True,
) -> List[T]:
    """Sort candidates by version, newest first unless reverse is False."""
    return sorted(candidates, key=lambda c: key(c).sort_key(), reverse=reverse)


def match_versions(
    selector,
    candidates: Iterable[T],
    key: Callable[[T], EngineVersion] = version_of,
) -> List[T]:
    """
    Find every candidate matching a selector.

    Args:
        selector: Selector string, VersionSelector or EngineVersion
        candidates: Versions, or objects carrying one (see key)
        key: Extracts the EngineVersion from a candidate

    Returns:
        Matching candidates, newest first (may be empty)
    """
    parsed = _as_selector(selector)
    return sort_versions((c for c in candidates if parsed.matches(key(c))), key=key)


def resolve_all(
    selector,
    candidates: Iterable[T],
    key: Callable[[T], EngineVersion] = version_of,
    what: str = "version",
) -> List[T]:
    """Like match_versions, but an empty result raises NotFoundError."""
    matches = match_versions(selector, candidates, key)
    if not matches:
        raise NotFoundError(f"No {what} matches '{selector}'")
    return matches


def resolve_unique(
    selector,
    candidates: Iterable[T],
    key: Callable[[T], EngineVersion] = version_of,
    what: str = "version",
) -> T:
    """
    Resolve a selector to exactly one candidate.

    A candidate equal to a fully specified selector wins over looser matches
    (e.g. "5.5.1" picks 5.5.1 over 5.5.1-preview).

    Raises:
        NotFoundError: nothing matches
        AmbiguousMatchError: several candidates match and none is exact
    """
    parsed = _as_selector(selector)
    matches = resolve_all(parsed, candidates, key, what)
    if len(matches) == 1:
        return matches[0]

    exact = [c for c in matches if parsed.is_exact(key(c))]
    if len(exact) == 1:
        return exact[0]

    raise AmbiguousMatchError(str(parsed), matches)
