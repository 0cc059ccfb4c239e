"""
UE5 Build Kit - Engine Source Installation

Clones an Unreal Engine source tree into the configured source directory and
prepares it (Setup, GenerateProjectFiles, optional editor build). The folder
is named after the version so a later scan registers it.

Access to the EpicGames/UnrealEngine repository requires a GitHub account
linked to an Epic Games account.
"""

import logging
import platform
from pathlib import Path
from typing import List, Optional

from .errors import BuildKitError
from .paths import engine_batch_dir
from .runner import ToolRunner, host_platform, script_name
from .versions import VersionSelector

logger = logging.getLogger(__name__)

DEFAULT_REPO_URL = "https://github.com/EpicGames/UnrealEngine.git"


def git_ref_for(version: str) -> str:
    """
    Branch or tag to check out for a version selector.

    "5.4" -> branch "5.4", "5.4.2" -> tag "5.4.2-release",
    prerelease versions ("5.5.0-preview-1") are used as-is.
    """
    selector = VersionSelector.parse(version)
    if selector.prerelease:
        return selector.text
    if selector.patch is None:
        return f"{selector.major}.{selector.minor}"
    return f"{selector.major}.{selector.minor}.{selector.patch}-release"


def build_script(engine_root: Path) -> Path:
    batch_dir = engine_batch_dir(engine_root)
    system = platform.system()
    if system == "Windows":
        return batch_dir / "Build.bat"
    if system == "Darwin":
        return batch_dir / "Mac" / "Build.sh"
    return batch_dir / "Linux" / "Build.sh"


def install_steps(engine_root: Path, build: bool = True) -> List[List[str]]:
    """Commands run inside a fresh clone, in order."""
    steps = [
        [str(engine_root / script_name("Setup"))],
        [str(engine_root / script_name("GenerateProjectFiles"))],
    ]
    if build:
        steps.append([
            str(build_script(engine_root)),
            "UnrealEditor",
            host_platform(),
            "Development",
            "-WaitMutex",
        ])
    return steps


def install_source_engine(
    version: str,
    source_dir: Path,
    runner: Optional[ToolRunner] = None,
    repo_url: str = DEFAULT_REPO_URL,
    build: bool = True,
    timeout: Optional[float] = None,
) -> Path:
    """
    Clone and prepare an engine source tree.

    Args:
        version: Version selector, e.g. "5.4" or "5.4.2"
        source_dir: Configured engine source directory
        runner: External tool runner
        repo_url: Git remote to clone from
        build: Also compile the editor
        timeout: Per-step timeout in seconds

    Returns:
        Path to the new engine root

    Raises:
        BuildKitError: target folder already exists and is not empty
        ExternalToolFailure: git or an engine script failed
    """
    runner = runner or ToolRunner()
    ref = git_ref_for(version)
    target = Path(source_dir) / version.strip()

    if target.exists() and any(target.iterdir()):
        raise BuildKitError(f"{target} already exists and is not empty")

    Path(source_dir).mkdir(parents=True, exist_ok=True)
    logger.info(f"Cloning {repo_url} ({ref}) into {target}")
    runner.run(
        ["git", "clone", "--depth", "1", "--branch", ref, repo_url, str(target)],
        timeout=timeout,
        check=True,
    )

    for step in install_steps(target, build):
        logger.info(f"Running {Path(step[0]).name}")
        runner.run(step, cwd=target, timeout=timeout, check=True)

    logger.info(f"Engine {version} installed at {target}")
    return target
