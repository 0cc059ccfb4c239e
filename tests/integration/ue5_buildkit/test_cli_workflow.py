"""
Integration tests for the ue5-buildkit command line.

Runs cli.main in-process against an isolated config file. External tools
are replaced by the FakeRunner from conftest.
"""

import pytest
import json
import zipfile
from pathlib import Path
from unittest.mock import patch

from ue5_buildkit.cli import build_parser, main
from ue5_buildkit.config import ConfigStore


class TestGlobalOptions:
    """Test options given before or after the subcommand both take effect."""

    @pytest.mark.parametrize("argv", [
        ["--config", "/x/c.json", "engines", "list"],
        ["engines", "--config", "/x/c.json", "list"],
        ["engines", "list", "--config", "/x/c.json"],
    ])
    def test_config_position(self, argv):
        assert build_parser().parse_args(argv).config == Path("/x/c.json")

    def test_verbose_and_toolchain_root_before_subcommand(self):
        args = build_parser().parse_args(
            ["-v", "--toolchain-root", "/tc", "toolchain", "list"]
        )
        assert args.verbose is True
        assert args.toolchain_root == Path("/tc")

    def test_options_absent(self):
        args = build_parser().parse_args(["engines", "list"])
        assert getattr(args, "config", None) is None

    def test_config_before_subcommand_is_written(
        self, config_path, tmp_path, isolated_profile_config
    ):
        """Test --config ahead of the subcommand writes that file, not the default."""
        assert main(["--config", str(config_path), "engines", "add", "5.4.2", str(tmp_path)]) == 0

        assert [str(e.version) for e in ConfigStore(config_path).load().engines] == ["5.4.2"]
        assert not isolated_profile_config.exists()


class TestEnginesCommands:
    """Test engine registration and listing end to end."""

    def test_list_empty(self, config_path, capsys):
        assert main(["engines", "list", "--config", str(config_path)]) == 0
        assert "No engines registered" in capsys.readouterr().out
        assert config_path.exists()

    def test_add_then_list_json(self, config_path, tmp_path, capsys):
        engine = tmp_path / "UE_5.4"
        engine.mkdir()

        assert main(["--config", str(config_path), "engines", "add", "5.4.2", str(engine)]) == 0
        capsys.readouterr()
        assert main(["engines", "list", "--json", "--config", str(config_path)]) == 0

        listed = json.loads(capsys.readouterr().out)
        assert listed == [{"version": "5.4.2", "path": str(engine), "source": "custom"}]

        saved = json.loads(config_path.read_text(encoding='utf-8'))
        assert saved["Engines"] == [{"Version": "5.4.2", "Path": str(engine)}]

    def test_duplicate_add_is_noop(self, config_path, tmp_path):
        main(["engines", "add", "5.4.2", str(tmp_path / "a"), "--config", str(config_path)])

        assert main(["engines", "add", "5.4", str(tmp_path / "b"), "--config", str(config_path)]) == 0

        engines = ConfigStore(config_path).load().engines
        assert [e.path for e in engines] == [tmp_path / "a"]

    def test_add_invalid_version_fails(self, config_path, tmp_path):
        code = main(["engines", "add", "latest", str(tmp_path), "--config", str(config_path)])
        assert code == 1

    def test_source_dir_set_and_show(self, config_path, engine_source_dir, capsys):
        assert main(["engines", "source-dir", str(engine_source_dir), "--config", str(config_path)]) == 0
        capsys.readouterr()

        main(["engines", "source-dir", "--config", str(config_path)])
        assert capsys.readouterr().out.strip() == str(engine_source_dir)

        main(["engines", "list", "--json", "--config", str(config_path)])
        listed = json.loads(capsys.readouterr().out)
        assert [e["version"] for e in listed] == ["5.5.0", "5.4.2", "5.3.0"]
        assert all(e["source"] == "scan" for e in listed)

    def test_install_requires_source_dir(self, config_path):
        assert main(["engines", "install", "5.4", "--config", str(config_path)]) == 1

    def test_install_clones_into_source_dir(self, config_path, tmp_path, fake_runner):
        source = tmp_path / "UnrealSource"
        main(["engines", "source-dir", str(source), "--config", str(config_path)])

        with patch("ue5_buildkit.cli.ToolRunner", return_value=fake_runner):
            code = main([
                "engines", "install", "5.4", "--no-build", "--config", str(config_path)
            ])

        assert code == 0
        assert fake_runner.run_calls[0]["args"][:6] == [
            "git", "clone", "--depth", "1", "--branch", "5.4"
        ]
        assert fake_runner.run_calls[0]["args"][-1] == str(source / "5.4")

    def test_corrupt_config_fails(self, config_path):
        config_path.parent.mkdir(parents=True)
        config_path.write_text("{ nope", encoding='utf-8')

        assert main(["engines", "list", "--config", str(config_path)]) == 1


class TestToolchainCommands:
    def test_resolve(self, config_path, capsys):
        assert main(["toolchain", "resolve", "5.5.1", "--config", str(config_path)]) == 0
        assert capsys.readouterr().out.strip() == "v23_clang-18.1.0-rockylinux8"

    def test_resolve_unknown(self, config_path):
        assert main(["toolchain", "resolve", "4.27", "--config", str(config_path)]) == 1

    def test_list_marks_installed(self, config_path, tmp_path, capsys):
        root = tmp_path / "toolchains"
        (root / "v22_clang-16.0.6-centos7").mkdir(parents=True)

        main(["toolchain", "list", "--toolchain-root", str(root), "--config", str(config_path)])

        lines = capsys.readouterr().out.splitlines()
        installed = [line for line in lines if "installed" in line]
        assert len(installed) == 1
        assert "v22_clang-16.0.6-centos7" in installed[0]


class TestPackageCommand:
    """Test plugin packaging through the CLI."""

    @pytest.fixture
    def configured(self, config_path, tmp_path):
        for version in ["5.3.0", "5.4.2"]:
            main([
                "engines", "add", version, str(tmp_path / "engines" / version),
                "--config", str(config_path),
            ])
        return config_path

    def test_package_all_versions(self, configured, temp_plugin, fake_runner, capsys):
        with patch("ue5_buildkit.cli.ToolRunner", return_value=fake_runner):
            code = main([
                "package", "--plugin-dir", str(temp_plugin), "--config", str(configured)
            ])

        assert code == 0
        build = temp_plugin / "Build"
        assert (build / "TestPlugin-1.2.0-5.4.2.zip").exists()
        assert (build / "TestPlugin-1.2.0-5.3.0.zip").exists()
        with zipfile.ZipFile(build / "TestPlugin-1.2.0-5.3.0.zip") as zf:
            assert "TestPlugin.uplugin" in zf.namelist()
        assert "[x] 5.4.2" in capsys.readouterr().out

    def test_package_reverse_order(self, configured, temp_plugin, fake_runner):
        with patch("ue5_buildkit.cli.ToolRunner", return_value=fake_runner):
            main([
                "package", "--reverse", "--plugin-dir", str(temp_plugin),
                "--config", str(configured),
            ])

        engines = [Path(c["engine"]).name for c in fake_runner.package_calls]
        assert engines == ["5.3.0", "5.4.2"]

    def test_package_skips_unknown_version(self, configured, temp_plugin, fake_runner, capsys):
        with patch("ue5_buildkit.cli.ToolRunner", return_value=fake_runner):
            code = main([
                "package", "--versions", "5.9", "5.4", "--plugin-dir", str(temp_plugin),
                "--config", str(configured),
            ])

        assert code == 0
        out = capsys.readouterr().out
        assert "[ ] 5.9" in out
        assert "[x] 5.4.2" in out

    def test_package_build_failure_exit_code(self, configured, temp_plugin, tmp_path, make_fake_runner):
        runner = make_fake_runner(fail_for=[tmp_path / "engines" / "5.4.2"])

        with patch("ue5_buildkit.cli.ToolRunner", return_value=runner):
            code = main([
                "package", "--plugin-dir", str(temp_plugin), "--config", str(configured)
            ])

        assert code == 1
        assert len(runner.package_calls) == 1

    def test_package_without_engines_fails(self, config_path, temp_plugin, fake_runner):
        with patch("ue5_buildkit.cli.ToolRunner", return_value=fake_runner):
            code = main([
                "package", "--plugin-dir", str(temp_plugin), "--config", str(config_path)
            ])

        assert code == 1
        assert fake_runner.package_calls == []

    def test_unknown_platform_fails(self, configured, temp_plugin, fake_runner):
        with patch("ue5_buildkit.cli.ToolRunner", return_value=fake_runner):
            code = main([
                "package", "--platforms", "PS5", "--plugin-dir", str(temp_plugin),
                "--config", str(configured),
            ])

        assert code == 1
