"""
UE5 Build Kit - Plugin Build Orchestration

Packages one plugin for several engine versions in sequence:

    RESOLVING_VERSIONS -> RESOLVING_PLUGIN -> BUILDING -> DONE | ABORTED

An engine missing from the registry skips that version only. Every other
failure (build error, ambiguous selector, missing toolchain) aborts the
whole run; outputs already produced are left in place.
"""

import enum
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from .errors import BuildKitError, NotFoundError
from .paths import find_plugin_descriptor
from .plugin import PluginDescriptor, archive_package, package_name
from .registry import EngineInstall, EngineRegistry
from .runner import ToolRunner, host_platform
from .toolchains import InstallPolicy, ToolchainCatalog, ToolchainInstaller

logger = logging.getLogger(__name__)

ALL_VERSIONS = "All"
TOOLCHAIN_ENV_VAR = "LINUX_MULTIARCH_ROOT"


class Platform(enum.Enum):
    WIN64 = "Win64"
    ANDROID = "Android"
    LINUX = "Linux"
    LINUX_ARM64 = "LinuxArm64"

    @classmethod
    def parse(cls, name: str) -> "Platform":
        for platform in cls:
            if platform.value.lower() == name.strip().lower():
                return platform
        choices = ", ".join(p.value for p in cls)
        raise BuildKitError(f"Unknown platform '{name}' (choose from {choices})")

    @property
    def is_linux_family(self) -> bool:
        return self in (Platform.LINUX, Platform.LINUX_ARM64)


def needs_cross_toolchain(platforms: Iterable[Platform], host: str) -> bool:
    """Linux targets need Epic's cross toolchain unless we already run on Linux."""
    return host != "Linux" and any(p.is_linux_family for p in platforms)


class BuildState(enum.Enum):
    RESOLVING_VERSIONS = "resolving-versions"
    RESOLVING_PLUGIN = "resolving-plugin"
    BUILDING = "building"
    DONE = "done"
    ABORTED = "aborted"


@dataclass
class BuildRequest:
    versions: List[str] = field(default_factory=lambda: [ALL_VERSIONS])
    reverse: bool = False
    platforms: List[Platform] = field(default_factory=lambda: [Platform.WIN64])
    with_host: bool = False
    plugin_dir: Optional[Path] = None
    output_dir: Optional[Path] = None
    toolchain_policy: InstallPolicy = InstallPolicy.PROMPT
    timeout: Optional[float] = None


@dataclass
class PackageOutcome:
    selector: str
    packaged: bool
    engine: Optional[EngineInstall] = None
    package_dir: Optional[Path] = None
    archive: Optional[Path] = None
    reason: str = ""


@dataclass
class BuildResult:
    outcomes: List[PackageOutcome] = field(default_factory=list)

    @property
    def packaged(self) -> List[PackageOutcome]:
        return [o for o in self.outcomes if o.packaged]

    @property
    def skipped(self) -> List[PackageOutcome]:
        return [o for o in self.outcomes if not o.packaged]


class BuildOrchestrator:
    """
    Drives plugin packaging across engine versions.

    Args:
        registry: Known engine installs
        runner: External tool boundary (ue4cli, installers)
        catalog: Toolchain table, defaults to the built-in one
        installer: Toolchain installer, defaults to one using runner
        host: Host platform name, defaults to the current machine
        script_dir: Last-resort root for the plugin search
    """

    def __init__(
        self,
        registry: EngineRegistry,
        runner: Optional[ToolRunner] = None,
        catalog: Optional[ToolchainCatalog] = None,
        installer: Optional[ToolchainInstaller] = None,
        host: Optional[str] = None,
        script_dir: Optional[Path] = None,
    ):
        self.registry = registry
        self.runner = runner or ToolRunner()
        self.catalog = catalog or ToolchainCatalog.default()
        self.installer = installer or ToolchainInstaller(self.runner)
        self.host = host or host_platform()
        self.script_dir = script_dir
        self.state: Optional[BuildState] = None
        self.result = BuildResult()

    def _enter(self, state: BuildState):
        logger.debug(f"Build state: {self.state.value if self.state else '-'} -> {state.value}")
        self.state = state

    def resolve_versions(self, selectors: List[str], reverse: bool = False) -> List[str]:
        """
        Expand "All" into every registered engine version; keep explicit
        selectors as given (they are matched per version while building).

        Raises:
            NotFoundError: nothing to build
        """
        if len(selectors) == 1 and selectors[0].strip().lower() == ALL_VERSIONS.lower():
            resolved = [str(e.version) for e in self.registry.all_engines(reverse=reverse)]
        else:
            resolved = [s for s in selectors if s.strip()]

        if not resolved:
            raise NotFoundError(
                "No engine versions to build. Add an engine or set a source directory first."
            )
        return resolved

    def resolve_plugin(self, plugin_dir: Optional[Path] = None) -> PluginDescriptor:
        descriptor_path = find_plugin_descriptor(plugin_dir, self.script_dir)
        descriptor = PluginDescriptor.load(descriptor_path)
        logger.info(
            f"Plugin: {descriptor.friendly_name} {descriptor.version_name} ({descriptor.path})"
        )
        return descriptor

    def toolchain_env(self, install: EngineInstall, request: BuildRequest) -> Dict[str, str]:
        """Environment for the package step; carries the toolchain root when needed."""
        if not needs_cross_toolchain(request.platforms, self.host):
            return {}

        release = self.catalog.resolve(install.version)
        toolchain_root = self.installer.ensure_installed(release, request.toolchain_policy)
        logger.info(f"Using toolchain {release.name} at {toolchain_root}")
        return {TOOLCHAIN_ENV_VAR: str(toolchain_root)}

    def build_version(
        self, selector: str, descriptor: PluginDescriptor, output_dir: Path, request: BuildRequest
    ) -> PackageOutcome:
        try:
            install = self.registry.resolve(selector)
        except NotFoundError as e:
            logger.error(f"Skipping {selector}: {e}")
            return PackageOutcome(selector, False, reason=str(e))

        logger.info(f"Packaging for engine {install.version} ({install.path})")
        self.runner.set_engine_root(install.path)
        env = self.toolchain_env(install, request)

        package_dir = Path(output_dir) / package_name(
            descriptor, install.version, request.with_host
        )
        self.runner.package_plugin(
            descriptor.root,
            [p.value for p in request.platforms],
            package_dir,
            with_host=request.with_host,
            env=env or None,
            timeout=request.timeout,
        )

        archive = archive_package(package_dir, include_binaries=request.with_host)
        return PackageOutcome(selector, True, install, package_dir, archive)

    def run(self, request: BuildRequest) -> BuildResult:
        """
        Package the plugin for every requested engine version, in order.

        Returns:
            BuildResult with one outcome per version

        Raises:
            BuildKitError: any fatal condition; self.state is ABORTED and
                self.result holds the outcomes completed so far
        """
        self.result = BuildResult()
        try:
            self._enter(BuildState.RESOLVING_VERSIONS)
            selectors = self.resolve_versions(request.versions, request.reverse)
            logger.info(f"Engine versions: {', '.join(selectors)}")

            self._enter(BuildState.RESOLVING_PLUGIN)
            descriptor = self.resolve_plugin(request.plugin_dir)
            output_dir = Path(request.output_dir or descriptor.root / "Build")

            self._enter(BuildState.BUILDING)
            for selector in selectors:
                outcome = self.build_version(selector, descriptor, output_dir, request)
                self.result.outcomes.append(outcome)
        except BuildKitError:
            self._enter(BuildState.ABORTED)
            raise

        self._enter(BuildState.DONE)
        logger.info(
            f"Packaged {len(self.result.packaged)} version(s), "
            f"skipped {len(self.result.skipped)}"
        )
        return self.result
