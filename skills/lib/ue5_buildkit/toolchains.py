"""
UE5 Build Kit - Linux Cross-Compile Toolchains

Maps engine versions to the Clang cross toolchain Epic ships for them, and
installs a missing toolchain from the Epic CDN.
"""

import enum
import logging
import shutil
import tempfile
import time
import urllib.error
import urllib.request
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, FrozenSet, Iterable, List, Mapping, Optional, Tuple

from . import toolchain_data
from .errors import AmbiguousMatchError, ExternalToolFailure, NotFoundError
from .versions import EngineVersion

logger = logging.getLogger(__name__)

DEFAULT_TOOLCHAINS_ROOT = Path("C:\\UnrealToolchains")


class ToolchainOs(enum.Enum):
    """Sysroot distribution a toolchain release targets."""

    CENTOS7 = "centos7"
    ROCKYLINUX8 = "rockylinux8"


@dataclass(frozen=True)
class ToolchainRelease:
    release_tag: str
    toolchain_version: EngineVersion
    supported_engine_minors: FrozenSet[Tuple[int, int]]
    os_tag: ToolchainOs

    @classmethod
    def from_dict(cls, data: Mapping) -> "ToolchainRelease":
        minors = frozenset(EngineVersion.parse(e).truncate() for e in data["engines"])
        return cls(
            release_tag=data["tag"],
            toolchain_version=EngineVersion.parse(data["clang"]),
            supported_engine_minors=minors,
            os_tag=ToolchainOs(data["os"]),
        )

    @property
    def name(self) -> str:
        """Folder and installer base name, e.g. v23_clang-18.1.0-rockylinux8."""
        return f"{self.release_tag}_clang-{self.toolchain_version}-{self.os_tag.value}"

    @property
    def installer_name(self) -> str:
        return f"{self.name}.exe"

    def supports(self, engine_version: EngineVersion) -> bool:
        return engine_version.truncate() in self.supported_engine_minors

    def __str__(self):
        return self.name


class ToolchainCatalog:
    """Static table of toolchain releases, keyed by engine minor version."""

    def __init__(self, releases: Iterable[ToolchainRelease]):
        self.releases: List[ToolchainRelease] = list(releases)

    @classmethod
    def default(cls) -> "ToolchainCatalog":
        return cls.from_table(toolchain_data.TOOLCHAIN_RELEASES)

    @classmethod
    def from_table(cls, table: Iterable[Mapping]) -> "ToolchainCatalog":
        return cls(ToolchainRelease.from_dict(row) for row in table)

    def resolve(self, engine_version) -> ToolchainRelease:
        """
        Find the toolchain release for an engine version.

        Args:
            engine_version: EngineVersion or version string ("5.5.1", "5.4")

        Returns:
            The single matching ToolchainRelease

        Raises:
            NotFoundError: no release supports that engine minor version
            AmbiguousMatchError: more than one release claims it
        """
        if not isinstance(engine_version, EngineVersion):
            try:
                engine_version = EngineVersion.parse(str(engine_version))
            except ValueError as e:
                raise NotFoundError(str(e)) from e

        matches = [r for r in self.releases if r.supports(engine_version)]
        major, minor = engine_version.truncate()
        if not matches:
            raise NotFoundError(
                f"No Linux toolchain is known for engine {major}.{minor}"
            )
        if len(matches) > 1:
            raise AmbiguousMatchError(f"{major}.{minor}", matches)
        return matches[0]


class InstallPolicy(enum.Enum):
    """What to do when a required toolchain is not installed."""

    PROMPT = "prompt"
    INSTALL = "install"
    FAIL = "fail"


def _ask(question: str) -> bool:
    answer = input(f"{question} [y/N] ")
    return answer.strip().lower() in ("y", "yes")


class ToolchainInstaller:
    """
    Checks for and installs toolchain releases under a root directory.

    Each release lives in <toolchains_root>/<release.name>.
    """

    DOWNLOAD_ATTEMPTS = 3
    DOWNLOAD_RETRY_DELAY = 2.0
    DOWNLOAD_TIMEOUT = 60

    def __init__(
        self,
        runner,
        toolchains_root: Optional[Path] = None,
        download_dir: Optional[Path] = None,
        base_url: str = toolchain_data.CDN_BASE_URL,
        confirm: Callable[[str], bool] = _ask,
        timeout: Optional[float] = None,
    ):
        self.runner = runner
        self.toolchains_root = Path(toolchains_root or DEFAULT_TOOLCHAINS_ROOT)
        self.download_dir = Path(download_dir or tempfile.gettempdir())
        self.base_url = base_url.rstrip("/")
        self.confirm = confirm
        self.timeout = timeout

    def install_dir(self, release: ToolchainRelease) -> Path:
        return self.toolchains_root / release.name

    def is_installed(self, release: ToolchainRelease) -> bool:
        return self.install_dir(release).is_dir()

    def download_url(self, release: ToolchainRelease) -> str:
        return f"{self.base_url}/{release.installer_name}"

    def ensure_installed(
        self, release: ToolchainRelease, policy: InstallPolicy = InstallPolicy.PROMPT
    ) -> Path:
        """
        Make sure a toolchain release is present, installing it if allowed.

        Returns:
            Path to the toolchain install directory

        Raises:
            NotFoundError: missing and the policy (or the user) refused install
            ExternalToolFailure: download or installer failed
        """
        target = self.install_dir(release)
        if target.is_dir():
            logger.debug(f"Toolchain {release.name} found at {target}")
            return target

        logger.warning(f"Toolchain {release.name} is not installed at {target}")
        if policy is InstallPolicy.FAIL:
            raise NotFoundError(f"Toolchain {release.name} is not installed at {target}")
        if policy is InstallPolicy.PROMPT and not self.confirm(
            f"Download and install {release.name}?"
        ):
            raise NotFoundError(f"Toolchain {release.name} installation declined")

        return self.install(release)

    def install(self, release: ToolchainRelease) -> Path:
        target = self.install_dir(release)
        installer = self.download(release)

        logger.info(f"Running installer {installer.name}")
        # NSIS: /S silent, /D must come last and stay unquoted
        result = self.runner.run(
            [str(installer), "/S", f"/D={target}"], timeout=self.timeout
        )
        if result.returncode != 0:
            raise ExternalToolFailure(result.args, result.returncode, "Toolchain installer failed")
        if not target.is_dir():
            raise ExternalToolFailure(
                result.args, result.returncode, f"Installer finished but {target} does not exist"
            )

        logger.info(f"Installed {release.name} to {target}")
        return target

    def download(self, release: ToolchainRelease) -> Path:
        """Fetch the installer, retrying network errors a bounded number of times."""
        url = self.download_url(release)
        destination = self.download_dir / release.installer_name
        self.download_dir.mkdir(parents=True, exist_ok=True)

        last_error = None
        for attempt in range(1, self.DOWNLOAD_ATTEMPTS + 1):
            logger.info(f"Downloading {url} (attempt {attempt}/{self.DOWNLOAD_ATTEMPTS})")
            try:
                with urllib.request.urlopen(url, timeout=self.DOWNLOAD_TIMEOUT) as response, \
                        open(destination, "wb") as out_file:
                    shutil.copyfileobj(response, out_file)
                return destination
            except (urllib.error.URLError, OSError) as e:
                last_error = e
                logger.warning(f"Download failed: {e}")
                if attempt < self.DOWNLOAD_ATTEMPTS:
                    time.sleep(self.DOWNLOAD_RETRY_DELAY)

        raise ExternalToolFailure(["download", url], None, str(last_error))
