"""
UE5 Build Kit - External Tool Runner

The single boundary through which every external process is started: git,
ue4cli (``ue4``), engine batch files and toolchain installers.

Nothing here mutates os.environ. Per-call environment entries (such as
LINUX_MULTIARCH_ROOT) are merged into a copy handed to the child process.
"""

import logging
import os
import platform
import subprocess
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

from .errors import ExternalToolFailure

logger = logging.getLogger(__name__)


def host_platform() -> str:
    """Unreal name of the machine we run on (Win64, Linux or Mac)."""
    system = platform.system()
    if system == "Windows":
        return "Win64"
    if system == "Darwin":
        return "Mac"
    return "Linux"


def script_name(base: str) -> str:
    """Engine batch file name for this host: Setup.bat or Setup.sh, etc."""
    return f"{base}.bat" if platform.system() == "Windows" else f"{base}.sh"


def _same_path(a, b) -> bool:
    return os.path.normcase(os.path.normpath(str(a))) == os.path.normcase(os.path.normpath(str(b)))


class ToolRunner:
    """
    Runs external commands with an optional timeout.

    Args:
        ue4_command: Executable for ue4cli (default "ue4")
        timeout: Default timeout in seconds for each call, None waits forever
    """

    def __init__(self, ue4_command: str = "ue4", timeout: Optional[float] = None):
        self.ue4_command = ue4_command
        self.timeout = timeout

    def run(
        self,
        args: Sequence,
        cwd: Optional[Path] = None,
        env: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
        capture: bool = False,
        check: bool = False,
    ) -> subprocess.CompletedProcess:
        """
        Run a command and wait for it.

        Args:
            args: Command and arguments
            cwd: Working directory for the child
            env: Extra environment entries for the child only
            timeout: Overrides the runner default when given
            capture: Capture stdout/stderr as text
            check: Raise ExternalToolFailure on a nonzero exit code

        Returns:
            The CompletedProcess

        Raises:
            ExternalToolFailure: command missing, timed out, or failed with check=True
        """
        cmd = [str(a) for a in args]
        timeout = self.timeout if timeout is None else timeout

        child_env = None
        if env:
            child_env = os.environ.copy()
            child_env.update(env)

        logger.debug(f"Running: {' '.join(cmd)} (cwd={cwd or os.getcwd()})")
        try:
            result = subprocess.run(
                cmd,
                cwd=str(cwd) if cwd else None,
                env=child_env,
                timeout=timeout,
                capture_output=capture,
                text=capture or None,
            )
        except subprocess.TimeoutExpired:
            raise ExternalToolFailure(cmd, None, f"Timed out after {timeout} seconds")
        except OSError as e:
            raise ExternalToolFailure(cmd, None, str(e)) from e

        if check and result.returncode != 0:
            detail = (result.stderr or "").strip()[-500:] if capture else ""
            raise ExternalToolFailure(cmd, result.returncode, detail)
        return result

    # ue4cli ---------------------------------------------------------------

    def get_engine_root(self) -> str:
        result = self.run([self.ue4_command, "root"], capture=True, check=True)
        return result.stdout.strip()

    def set_engine_root(self, engine_path: Path) -> bool:
        """
        Point ue4cli at an engine, skipping the call when it already is.

        Returns:
            True if the root was changed
        """
        try:
            current = self.get_engine_root()
        except ExternalToolFailure as e:
            # ue4cli exits nonzero when no root is configured or detectable
            logger.debug(f"No current engine root: {e}")
            current = ""

        if current and _same_path(current, engine_path):
            logger.debug(f"Engine root already set to {engine_path}")
            return False

        logger.info(f"Setting engine root to {engine_path}")
        self.run([self.ue4_command, "setroot", str(engine_path)], check=True)
        return True

    def package_plugin(
        self,
        plugin_root: Path,
        platforms: Iterable[str],
        package_dir: Path,
        with_host: bool = False,
        env: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> subprocess.CompletedProcess:
        """Run ``ue4 package`` for a plugin; a nonzero exit raises."""
        args: List[str] = [
            self.ue4_command,
            "package",
            f"-TargetPlatforms={'+'.join(platforms)}",
            f"-Package={package_dir}",
        ]
        if not with_host:
            args.append("-NoHostPlatform")

        return self.run(args, cwd=plugin_root, env=env, timeout=timeout, check=True)
