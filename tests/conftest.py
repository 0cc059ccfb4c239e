"""
Shared pytest configuration and fixtures for ue5-buildkit tests.
"""

import pytest
import sys
import json
import subprocess
from pathlib import Path

# Add the shared skill library to the Python path
PLUGIN_ROOT = Path(__file__).parent.parent
SKILLS_ROOT = PLUGIN_ROOT / "skills"

SKILLS_LIB = SKILLS_ROOT / "lib"
if str(SKILLS_LIB) not in sys.path:
    sys.path.insert(0, str(SKILLS_LIB))


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "e2e: End-to-end tests requiring a real engine and ue4cli")
    config.addinivalue_line("markers", "slow: Slow tests")
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")


def pytest_collection_modifyitems(config, items):
    """Modify test collection based on markers and options."""
    if not config.getoption("--run-e2e", default=False):
        skip_e2e = pytest.mark.skip(reason="E2E tests disabled (use --run-e2e to enable)")
        for item in items:
            if "e2e" in item.keywords:
                item.add_marker(skip_e2e)

    if not config.getoption("--run-slow", default=False):
        skip_slow = pytest.mark.skip(reason="Slow tests disabled (use --run-slow to enable)")
        for item in items:
            if "slow" in item.keywords:
                item.add_marker(skip_slow)


def pytest_addoption(parser):
    """Add custom command line options."""
    parser.addoption(
        "--run-e2e",
        action="store_true",
        default=False,
        help="Run end-to-end tests that require a real engine install"
    )
    parser.addoption(
        "--run-slow",
        action="store_true",
        default=False,
        help="Run slow tests"
    )


# ============================================================================
# Shared Fixtures
# ============================================================================

class FakeRunner:
    """
    Stands in for ToolRunner: records calls, creates fake package output,
    and fails the package step for selected engine paths.
    """

    def __init__(self, fail_for=()):
        self.engine_root = ""
        self.fail_for = {str(p) for p in fail_for}
        self.setroot_calls = []
        self.package_calls = []
        self.run_calls = []

    def run(self, args, cwd=None, env=None, timeout=None, capture=False, check=False):
        self.run_calls.append({"args": list(args), "cwd": cwd, "env": env, "timeout": timeout})
        return subprocess.CompletedProcess(list(args), 0, "", "")

    def get_engine_root(self):
        return self.engine_root

    def set_engine_root(self, engine_path):
        if str(engine_path) == self.engine_root:
            return False
        self.setroot_calls.append(str(engine_path))
        self.engine_root = str(engine_path)
        return True

    def package_plugin(self, plugin_root, platforms, package_dir, with_host=False, env=None, timeout=None):
        from ue5_buildkit.errors import ExternalToolFailure

        self.package_calls.append({
            "engine": self.engine_root,
            "plugin_root": Path(plugin_root),
            "platforms": list(platforms),
            "package_dir": Path(package_dir),
            "with_host": with_host,
            "env": env,
            "timeout": timeout,
        })
        if self.engine_root in self.fail_for:
            raise ExternalToolFailure(["ue4", "package"], 1, "simulated build failure")

        package_dir = Path(package_dir)
        (package_dir / "Resources").mkdir(parents=True, exist_ok=True)
        (package_dir / "Resources" / "Icon128.png").write_bytes(b"png")
        (package_dir / "Binaries" / "Win64").mkdir(parents=True, exist_ok=True)
        (package_dir / "Binaries" / "Win64" / "Plugin.dll").write_bytes(b"dll")
        (package_dir / "Intermediate").mkdir(exist_ok=True)
        (package_dir / "Intermediate" / "Build.txt").write_text("tmp")
        (package_dir / "TestPlugin.uplugin").write_text("{}")
        return subprocess.CompletedProcess(["ue4", "package"], 0)


@pytest.fixture(autouse=True)
def isolated_profile_config(tmp_path, monkeypatch):
    """
    Point the default config path into the test's tmp dir and drop the
    cached store, so no test reads or writes ~/.ue5-buildkit.

    Returns:
        The default config path for this test
    """
    default_path = tmp_path / "default-profile" / "config.json"
    monkeypatch.setenv("UE5_BUILDKIT_CONFIG", str(default_path))
    monkeypatch.setattr("ue5_buildkit.config._store", None)
    return default_path


@pytest.fixture
def fake_runner():
    """A FakeRunner that never fails."""
    return FakeRunner()


@pytest.fixture
def make_fake_runner():
    """Factory for FakeRunner instances that fail for given engine paths."""
    return FakeRunner


@pytest.fixture
def config_path(tmp_path):
    """Path for an isolated config file (not created)."""
    return tmp_path / "profile" / "config.json"


@pytest.fixture
def engine_source_dir(tmp_path):
    """
    Create a source directory with engine folders and some noise.

    Returns:
        Path to the source directory
    """
    source = tmp_path / "UnrealSource"
    for name in ["5.3.0", "5.4.2", "UE_5.5", "Backup", "notes-old"]:
        (source / name).mkdir(parents=True)
    (source / "README.txt").write_text("not an engine")
    return source


@pytest.fixture
def temp_plugin(tmp_path):
    """
    Create a minimal plugin with a .uplugin descriptor.

    Returns:
        Path to the plugin root directory
    """
    plugin_dir = tmp_path / "Plugins" / "TestPlugin"
    (plugin_dir / "Source" / "TestPlugin" / "Private").mkdir(parents=True)

    uplugin = plugin_dir / "TestPlugin.uplugin"
    uplugin.write_text(json.dumps({
        "FileVersion": 3,
        "Version": 1,
        "VersionName": "1.2.0",
        "FriendlyName": "Test Plugin",
        "Modules": [{"Name": "TestPlugin", "Type": "Runtime"}]
    }, indent="\t"), encoding='utf-8')

    return plugin_dir


@pytest.fixture
def plugin_root():
    """Return the repository root directory."""
    return PLUGIN_ROOT


@pytest.fixture
def skills_root():
    """Return the skills root directory."""
    return SKILLS_ROOT
