from pathlib import Path

import pytest

from xcpack import cli
from xcpack.commands import build as build_command
from xcpack.commands import generate_package as generate_package_command
from xcpack.commands.build import Build
from xcpack.commands.generate_package import GeneratePackage, parse_package_name_map
from xcpack.utils.apple.config import XcpackConfig
from xcpack.utils.apple.platform import ApplePlatform, CargoProfile
from xcpack.utils.context.context import CliContext
from xcpack.utils.errors import ConfigurationError


def test_command_list() -> None:
    assert cli.Cli().get_command_list() == ["build", "generate-package"]


@pytest.mark.parametrize(
    ("subcommand", "module_name", "class_name"),
    [
        ("build", "xcpack.commands.build", "Build"),
        ("generate-package", "xcpack.commands.generate_package", "GeneratePackage"),
    ],
)
def test_subcommand_dispatch_names(subcommand: str, module_name: str, class_name: str) -> None:
    assert cli.command_module_name(subcommand) == module_name
    assert cli.command_class_name(subcommand) == class_name


def test_root_cli_leaves_options_to_the_subcommand() -> None:
    args = cli.Cli().cli(["build", "--profile", "dev", "--only-ios"])

    assert args.subcommand == "build"
    assert args.argv == ["--profile", "dev", "--only-ios"]


def test_root_help_exits_zero(capsys) -> None:
    with pytest.raises(SystemExit) as exc_info:
        cli.Cli().cli(["--help"])

    assert exc_info.value.code == 0
    assert "generate-package" in capsys.readouterr().out


def test_missing_subcommand_exits_one() -> None:
    with pytest.raises(SystemExit) as exc_info:
        cli.main([])

    assert exc_info.value.code == 1


def test_build_arguments() -> None:
    args = Build().cli(["--profile", "release", "--ffi-module-name", "MyFFI", "--platforms", "ios"])

    assert args.profile == "release"
    assert args.ffi_module_name == "MyFFI"
    assert args.platforms == "ios"
    assert not args.only_ios
    assert not args.no_verify_headers


@pytest.mark.parametrize(
    "argv",
    [
        ["--only-ios", "--only-macos"],
        ["--only-ios", "--platforms", "macos"],
        ["--profile", "bench"],
    ],
)
def test_build_rejects_invalid_arguments(argv: list[str]) -> None:
    with pytest.raises(SystemExit) as exc_info:
        Build().cli(argv)

    assert exc_info.value.code == 2


@pytest.mark.parametrize(
    ("argv", "config", "expected"),
    [
        (["--only-ios"], {}, [ApplePlatform.IOS]),
        (["--only-macos"], {}, [ApplePlatform.MACOS]),
        (["--platforms", "tvos,watchos"], {}, [ApplePlatform.TVOS, ApplePlatform.WATCHOS]),
        ([], {"xcframework": {"platforms": ["ios"]}}, [ApplePlatform.IOS]),
        (["--only-macos"], {"xcframework": {"platforms": ["ios"]}}, [ApplePlatform.MACOS]),
    ],
)
def test_build_platform_selection(argv, config, expected, tmp_path: Path) -> None:
    command = Build()

    platforms = command.select_platforms(command.cli(argv), XcpackConfig(config, tmp_path))

    assert platforms == expected


def test_build_exec_passes_config_and_overrides(monkeypatch, tmp_path: Path) -> None:
    (tmp_path / "XCPACK.toml").write_text(
        '[xcframework]\nffi_module_name = "MyFFI"\nprofile = "dev"\n', encoding="utf-8"
    )
    loaded = []
    calls = []
    monkeypatch.setattr(
        build_command.Project,
        "load",
        classmethod(lambda cls, name, current_dir=None: loaded.append((name, current_dir)) or name),
    )
    monkeypatch.setattr(build_command, "build", lambda *args: calls.append(args))
    command = Build()

    command.exec(
        CliContext(str(tmp_path)),
        command.cli(["--profile", "release", "--only-ios", "--no-verify-headers"]),
    )

    assert loaded == [("MyFFI", tmp_path.resolve())]
    project, config, profile, platforms = calls[0]
    assert project == "MyFFI"
    assert not config.verify_headers
    assert profile is CargoProfile.RELEASE
    assert platforms == [ApplePlatform.IOS]


def test_generate_package_release_options_override_config(monkeypatch, tmp_path: Path) -> None:
    (tmp_path / "XCPACK.toml").write_text(
        '[project]\nname = "my-sdk"\n\n[xcframework]\nffi_module_name = "MyFFI"\n\n'
        '[spm]\nrelease_url = "https://example.com/old.zip"\nrelease_checksum = "old"\n',
        encoding="utf-8",
    )
    calls = []
    monkeypatch.setattr(
        generate_package_command.Project,
        "load",
        classmethod(lambda cls, name, current_dir=None: name),
    )
    monkeypatch.setattr(
        generate_package_command, "generate_swift_package", lambda *args: calls.append(args)
    )
    command = GeneratePackage()

    command.exec(
        CliContext(str(tmp_path)),
        command.cli(["--release-url", "https://example.com/new.zip", "--release-checksum", "new"]),
    )

    project, project_name, package_name_map, config = calls[0]
    assert project_name == "my-sdk"
    assert config.release_url == "https://example.com/new.zip"
    assert config.release_checksum == "new"


def test_parse_package_name_map() -> None:
    assert parse_package_name_map("a:A, b-c:BC,") == {"a": "A", "b-c": "BC"}
    assert parse_package_name_map(None) == {}
    with pytest.raises(ConfigurationError):
        parse_package_name_map("a=A")


def test_generate_package_arguments() -> None:
    args = GeneratePackage().cli(["--project-name", "my-sdk", "--package-name-map", "a:A"])

    assert args.project_name == "my-sdk"
    assert args.package_name_map == "a:A"
    assert args.ffi_module_name is None


def test_errors_are_reported_with_exit_code_one(monkeypatch, tmp_path: Path, capsys) -> None:
    monkeypatch.chdir(tmp_path)

    with pytest.raises(SystemExit) as exc_info:
        cli.main(["generate-package", "--project-name", "my-sdk"])

    assert exc_info.value.code == 1
    assert "Missing FFI module name" in capsys.readouterr().out
