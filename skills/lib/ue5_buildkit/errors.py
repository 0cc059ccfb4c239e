"""
UE5 Build Kit - Error Types

Every failure that should stop a command derives from BuildKitError so the
CLI can report it in one place. Recoverable conditions (bad folder names in a
scanned directory, duplicate engine entries) are logged as warnings instead.
"""

from typing import Iterable, Optional, Sequence


class BuildKitError(Exception):
    """Base class for all ue5_buildkit failures."""


class NotFoundError(BuildKitError):
    """No engine, toolchain or plugin matches the given selector or location."""


class AmbiguousMatchError(BuildKitError):
    """Several candidates match where exactly one is required."""

    def __init__(self, selector: str, candidates: Iterable[object]):
        self.selector = selector
        self.candidates = [str(c) for c in candidates]
        super().__init__(
            f"'{selector}' is ambiguous, it matches: {', '.join(self.candidates)}"
        )


class ExternalToolFailure(BuildKitError):
    """An external process failed, timed out, or could not be started."""

    def __init__(
        self,
        command: Sequence[str],
        returncode: Optional[int] = None,
        detail: str = "",
    ):
        self.command = [str(part) for part in command]
        self.returncode = returncode
        self.detail = detail

        message = f"Command failed: {' '.join(self.command)}"
        if returncode is not None:
            message += f" (exit code {returncode})"
        if detail:
            message += f"\n{detail}"
        super().__init__(message)


class ConfigCorruptionError(BuildKitError):
    """The persisted configuration file cannot be parsed."""

    def __init__(self, path, detail: str):
        self.path = path
        self.detail = detail
        super().__init__(f"Invalid configuration file {path}: {detail}")
