"""
UE5 Build Kit - Command Line Interface

Entry point for the ``ue5-buildkit`` console script and the skill wrapper
scripts (engines.py, package-plugin.py).
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .config import ConfigStore, get_store
from .errors import BuildKitError
from .orchestrator import ALL_VERSIONS, BuildOrchestrator, BuildRequest, Platform
from .registry import EngineRegistry
from .runner import ToolRunner
from .source_install import DEFAULT_REPO_URL, install_source_engine
from .toolchains import InstallPolicy, ToolchainCatalog, ToolchainInstaller
from .versions import EngineVersion

logger = logging.getLogger("ue5_buildkit")

EPILOG = """
Examples:
  # List known engines (scanned + custom), newest first
  ue5-buildkit engines list

  # Register an engine installed somewhere else
  ue5-buildkit engines add 5.4.2 "D:/Epic Games/UE_5.4"

  # Scan D:/UnrealSource for engine folders named by version
  ue5-buildkit engines source-dir D:/UnrealSource

  # Clone and build engine 5.5 from source into the source directory
  ue5-buildkit engines install 5.5

  # Package the plugin in the current directory for every engine
  ue5-buildkit package --platforms Win64 Linux

  # Package for selected engines only, oldest first, with host binaries
  ue5-buildkit package --versions 5.3 5.4 --with-host
"""


def _store(args) -> ConfigStore:
    return get_store(getattr(args, "config", None))


# engines ------------------------------------------------------------------

def cmd_engines_list(args) -> int:
    registry = EngineRegistry.from_config(_store(args).config)
    engines = registry.all_engines(reverse=args.reverse)

    if args.json:
        print(json.dumps(
            [{"version": str(e.version), "path": str(e.path), "source": e.source} for e in engines],
            indent=2,
        ))
        return 0

    if not engines:
        print("No engines registered.")
        return 0
    for engine in engines:
        print(f"  {str(engine.version):<24} {engine.source:<7} {engine.path}")
    return 0


def cmd_engines_add(args) -> int:
    path = Path(args.path)
    if not path.exists():
        logger.warning(f"{path} does not exist (adding anyway)")

    try:
        EngineVersion.parse(args.version)
    except ValueError as e:
        raise BuildKitError(str(e)) from e

    with _store(args).transaction() as config:
        registry = EngineRegistry.from_config(config)
        if registry.add_custom(args.version, path):
            config.engines = registry.custom_engines()
            print(f"Added engine {args.version}: {path}")
    return 0


def cmd_engines_source_dir(args) -> int:
    store = _store(args)
    if args.path is None:
        source = store.config.source_directory
        print(source if source else "(not set)")
        return 0

    path = Path(args.path)
    if not path.is_dir():
        logger.warning(f"{path} is not a directory yet")
    with store.transaction() as config:
        config.source_directory = path
    print(f"Source directory set to {path}")
    return 0


def cmd_engines_install(args) -> int:
    source_dir = _store(args).config.source_directory
    if not source_dir:
        raise BuildKitError("No source directory configured (use 'engines source-dir <path>')")

    try:
        target = install_source_engine(
            args.version,
            source_dir,
            ToolRunner(timeout=args.timeout),
            repo_url=args.repo,
            build=not args.no_build,
        )
    except ValueError as e:
        raise BuildKitError(str(e)) from e
    print(f"Installed engine {args.version} at {target}")
    return 0


# toolchain ----------------------------------------------------------------

def _installer(args, runner: Optional[ToolRunner] = None) -> ToolchainInstaller:
    return ToolchainInstaller(
        runner or ToolRunner(), toolchains_root=getattr(args, "toolchain_root", None)
    )


def cmd_toolchain_list(args) -> int:
    installer = _installer(args)
    for release in ToolchainCatalog.default().releases:
        engines = ", ".join(f"{a}.{b}" for a, b in sorted(release.supported_engine_minors))
        status = "installed" if installer.is_installed(release) else "-"
        print(f"  {release.name:<32} UE {engines:<12} {status}")
    return 0


def cmd_toolchain_resolve(args) -> int:
    release = ToolchainCatalog.default().resolve(args.version)
    print(release.name)
    return 0


def cmd_toolchain_install(args) -> int:
    release = ToolchainCatalog.default().resolve(args.version)
    policy = InstallPolicy.INSTALL if args.yes else InstallPolicy.PROMPT
    target = _installer(args).ensure_installed(release, policy)
    print(f"{release.name}: {target}")
    return 0


# package ------------------------------------------------------------------

def cmd_package(args) -> int:
    store = _store(args)
    registry = EngineRegistry.from_config(store.config)
    runner = ToolRunner(ue4_command=args.ue4, timeout=args.timeout)

    request = BuildRequest(
        versions=args.versions,
        reverse=args.reverse,
        platforms=[Platform.parse(p) for p in args.platforms],
        with_host=args.with_host,
        plugin_dir=args.plugin_dir,
        output_dir=args.output_dir,
        toolchain_policy=InstallPolicy(args.toolchain_policy),
        timeout=args.timeout,
    )
    orchestrator = BuildOrchestrator(
        registry, runner, installer=_installer(args, runner)
    )
    result = orchestrator.run(request)

    for outcome in result.outcomes:
        if outcome.packaged:
            print(f"  [x] {outcome.engine.version}: {outcome.archive}")
        else:
            print(f"  [ ] {outcome.selector}: {outcome.reason}")
    return 0


def _common_options() -> argparse.ArgumentParser:
    # Subparsers share these actions. SUPPRESS keeps a subcommand from
    # resetting values given before it, so absent options are read with getattr
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        type=Path,
        default=argparse.SUPPRESS,
        help="Config file (default: UE5_BUILDKIT_CONFIG or ~/.ue5-buildkit/config.json)"
    )
    common.add_argument(
        "--verbose", "-v",
        action="store_true",
        default=argparse.SUPPRESS,
        help="Enable verbose logging"
    )
    common.add_argument(
        "--toolchain-root",
        type=Path,
        default=argparse.SUPPRESS,
        help="Directory holding Linux cross toolchains (default: C:\\UnrealToolchains)"
    )
    return common


def build_parser() -> argparse.ArgumentParser:
    common = _common_options()
    parser = argparse.ArgumentParser(
        prog="ue5-buildkit",
        description="Manage Unreal Engine installs and package plugins for several engine versions",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=EPILOG,
        parents=[common],
    )

    commands = parser.add_subparsers(dest="command", metavar="COMMAND")
    commands.required = True

    # engines
    engines = commands.add_parser("engines", help="List and register engine installs", parents=[common])
    engine_commands = engines.add_subparsers(dest="engines_command", metavar="ACTION")
    engine_commands.required = True

    p = engine_commands.add_parser("list", help="List known engines", parents=[common])
    p.add_argument("--reverse", action="store_true", help="Oldest first")
    p.add_argument("--json", action="store_true", help="Output as JSON")
    p.set_defaults(func=cmd_engines_list)

    p = engine_commands.add_parser("add", help="Register a custom engine install", parents=[common])
    p.add_argument("version", help="Engine version, e.g. 5.4.2")
    p.add_argument("path", help="Engine root directory")
    p.set_defaults(func=cmd_engines_add)

    p = engine_commands.add_parser("source-dir", help="Show or set the engine source directory", parents=[common])
    p.add_argument("path", nargs="?", default=None, help="New source directory")
    p.set_defaults(func=cmd_engines_source_dir)

    p = engine_commands.add_parser("install", help="Clone and build an engine from source", parents=[common])
    p.add_argument("version", help="Engine version, e.g. 5.5 or 5.4.2")
    p.add_argument("--repo", default=DEFAULT_REPO_URL, help="Git repository URL")
    p.add_argument("--no-build", action="store_true", help="Skip compiling the editor")
    p.add_argument("--timeout", type=float, default=None, help="Timeout per step in seconds")
    p.set_defaults(func=cmd_engines_install)

    # toolchain
    toolchain = commands.add_parser("toolchain", help="Linux cross-compile toolchains", parents=[common])
    toolchain_commands = toolchain.add_subparsers(dest="toolchain_command", metavar="ACTION")
    toolchain_commands.required = True

    p = toolchain_commands.add_parser("list", help="List known toolchain releases", parents=[common])
    p.set_defaults(func=cmd_toolchain_list)

    p = toolchain_commands.add_parser("resolve", help="Show the toolchain for an engine version", parents=[common])
    p.add_argument("version", help="Engine version")
    p.set_defaults(func=cmd_toolchain_resolve)

    p = toolchain_commands.add_parser("install", help="Install the toolchain for an engine version", parents=[common])
    p.add_argument("version", help="Engine version")
    p.add_argument("--yes", "-y", action="store_true", help="Do not ask before installing")
    p.set_defaults(func=cmd_toolchain_install)

    # package
    p = commands.add_parser("package", help="Package a plugin for one or more engine versions", parents=[common])
    p.add_argument(
        "--versions",
        nargs="+",
        default=[ALL_VERSIONS],
        help="Engine version selectors, or All (default)"
    )
    p.add_argument("--reverse", action="store_true", help="With All: oldest engine first")
    p.add_argument(
        "--platforms",
        nargs="+",
        default=[Platform.WIN64.value],
        help=f"Target platforms ({', '.join(pl.value for pl in Platform)})"
    )
    p.add_argument("--with-host", action="store_true", help="Keep host platform binaries")
    p.add_argument("--plugin-dir", type=Path, default=None, help="Plugin directory (default: search upward from cwd)")
    p.add_argument("--output-dir", type=Path, default=None, help="Output directory (default: <plugin>/Build)")
    p.add_argument(
        "--toolchain-policy",
        choices=[policy.value for policy in InstallPolicy],
        default=InstallPolicy.PROMPT.value,
        help="What to do when a Linux toolchain is missing"
    )
    p.add_argument("--timeout", type=float, default=None, help="Timeout per external command in seconds")
    p.add_argument("--ue4", default="ue4", help="ue4cli executable")
    p.set_defaults(func=cmd_package)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """CLI Entry point"""
    logging.basicConfig(
        format="[%(levelname)s] %(message)s",
        level=logging.INFO
    )

    parser = build_parser()
    args = parser.parse_args(argv)

    if getattr(args, "verbose", False):
        logger.setLevel(logging.DEBUG)

    try:
        return args.func(args)
    except BuildKitError as e:
        logger.error(str(e))
        return 1
    except KeyboardInterrupt:
        logger.error("Interrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
