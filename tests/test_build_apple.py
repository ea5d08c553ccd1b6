import sys
from pathlib import Path

import pytest

from conftest import FakeToolchain
from xcpack.build_scripts import build_apple
from xcpack.build_scripts.build_apple import (
    PlatformTarget,
    build,
    create_linux_library,
    default_platforms,
    render_module_map,
    reorganize_binding_files,
    swift_wrapper_prefix,
    update_swift_wrapper,
    update_swift_wrappers,
)
from xcpack.utils.apple.config import XcpackConfig
from xcpack.utils.apple.platform import ApplePlatform, CargoProfile
from xcpack.utils.cargo.graph import PackageNode
from xcpack.utils.cargo.project import Project
from xcpack.utils.errors import ArtifactNotFoundError, ProcessError

# stands in for uniffi-bindgen-swift: <library> <out_dir>
GENERATOR_SCRIPT = """
import pathlib
import sys

out = pathlib.Path(sys.argv[2])
(out / "a.swift").write_text("import aFFI\\nprotocol UniffiForeignFutureTask {\\n}\\n")
(out / "aFFI.h").write_text("void a_hello(void);\\n")
"""


def _node(name: str, *deps: PackageNode) -> PackageNode:
    node = PackageNode(name, f"/src/{name}/Cargo.toml")
    node.dependencies.extend(deps)
    return node


@pytest.fixture
def config(tmp_path: Path) -> XcpackConfig:
    return XcpackConfig(
        {
            "xcframework": {
                "binding_generator": [
                    sys.executable,
                    "-c",
                    GENERATOR_SCRIPT,
                    "{library}",
                    "{out_dir}",
                ]
            }
        },
        tmp_path,
    )


@pytest.fixture
def project(make_package, make_metadata) -> Project:
    return Project("MyFFI", make_metadata([make_package("a")]))


@pytest.fixture
def fake_cargo(monkeypatch, tmp_path: Path) -> list:
    """Replace cargo build with one that drops liba.a where cargo would."""
    calls = []

    def _exec_command(command, timeout_second=None, env=None, cwd=None):
        calls.append((list(command), env))
        profile_dir = "debug" if command[command.index("--profile") + 1] == "dev" else "release"
        target_dir = tmp_path / "target"
        if "--target" in command:
            target_dir = target_dir / command[command.index("--target") + 1]
        built_dir = target_dir / profile_dir
        built_dir.mkdir(parents=True, exist_ok=True)
        (built_dir / "liba.a").write_bytes(b"!<arch>\n")
        return 0, ""

    monkeypatch.setattr(build_apple, "exec_command", _exec_command)
    return calls


def test_render_module_map() -> None:
    assert render_module_map("MyFFI", ["a.h", "b.h"]) == (
        "module MyFFI {\n"
        '    header "a.h"\n'
        '    header "b.h"\n'
        "    export *\n"
        "}\n"
    )


def test_reorganize_moves_headers_and_writes_module_map(tmp_path: Path) -> None:
    bindings_dir = tmp_path / "swift-bindings"
    bindings_dir.mkdir()
    for name in ["bFFI.h", "aFFI.h", "a.swift"]:
        (bindings_dir / name).write_text("//\n", encoding="utf-8")

    headers_dir = reorganize_binding_files(bindings_dir, "MyFFI")

    assert sorted(p.name for p in bindings_dir.iterdir()) == ["Headers", "a.swift"]
    assert sorted(p.name for p in headers_dir.iterdir()) == [
        "aFFI.h",
        "bFFI.h",
        "module.modulemap",
    ]
    assert (headers_dir / "module.modulemap").read_text(encoding="utf-8") == render_module_map(
        "MyFFI", ["aFFI.h", "bFFI.h"]
    )


def test_cargo_command_uses_nightly_build_std_for_tvos(config: XcpackConfig) -> None:
    tvos = PlatformTarget("a", CargoProfile.RELEASE, ApplePlatform.TVOS, config).cargo_command()
    ios = PlatformTarget("a", CargoProfile.RELEASE, ApplePlatform.IOS, config).cargo_command()

    assert tvos[:4] == ["cargo", "+nightly", "-Z", "build-std=panic_abort,std"]
    assert "+nightly" not in ios
    assert ios[-5:] == ["build", "--package", "a", "--profile", "release"]
    assert 'profile.release.panic="abort"' in ios


def test_build_package_runs_once_per_triple_with_deployment_target(
    config: XcpackConfig, fake_cargo
) -> None:
    target = PlatformTarget("a", CargoProfile.DEV, ApplePlatform.IOS, config)

    target.build_package()

    assert [c[c.index("--target") + 1] for c, _ in fake_cargo] == target.triples()
    assert all(env == {"IPHONEOS_DEPLOYMENT_TARGET": "13.0"} for _, env in fake_cargo)


def test_build_package_failure_names_the_triple(config: XcpackConfig, monkeypatch) -> None:
    monkeypatch.setattr(build_apple, "exec_command", lambda *args, **kwargs: (101, ""))
    target = PlatformTarget("a", CargoProfile.DEV, ApplePlatform.MACOS, config)

    with pytest.raises(ProcessError) as exc_info:
        target.build_package()

    assert exc_info.value.returncode == 101
    assert "x86_64-apple-darwin" in str(exc_info.value)


def test_swift_wrapper_prefix_imports_dependencies_once() -> None:
    d = _node("d")
    a = _node("a", _node("b", d), _node("c", d))

    assert swift_wrapper_prefix(a, "MyFFI") == "import c\nimport d\nimport b\nimport MyFFI\n"
    assert swift_wrapper_prefix(d, "dFFI") == ""


def test_swift_wrapper_prefix_imports_repeated_dependency_once() -> None:
    b = _node("b")

    assert swift_wrapper_prefix(_node("a", b, b), "MyFFI") == "import b\nimport MyFFI\n"


def test_update_swift_wrapper_prefixes_and_hides_shared_protocol(tmp_path: Path) -> None:
    wrapper = tmp_path / "a.swift"
    wrapper.write_text(
        "import aFFI\nprotocol UniffiForeignFutureTask {\n}\nprotocol Other {\n}\n",
        encoding="utf-8",
    )

    update_swift_wrapper(wrapper, _node("a", _node("b")), "MyFFI", tmp_path / "tmp")

    assert wrapper.read_text(encoding="utf-8") == (
        "import b\nimport MyFFI\n\n"
        "import aFFI\nfileprivate protocol UniffiForeignFutureTask {\n}\nprotocol Other {\n}\n"
    )
    assert list((tmp_path / "tmp").iterdir()) == []


def test_update_swift_wrappers_requires_every_wrapper(project: Project) -> None:
    with pytest.raises(ArtifactNotFoundError):
        update_swift_wrappers(project)


def test_create_linux_library_layout(project: Project, tmp_path: Path) -> None:
    host_dir = tmp_path / "target" / "release"
    headers_dir = host_dir / "swift-bindings" / "Headers"
    headers_dir.mkdir(parents=True)
    (host_dir / "liba.a").write_bytes(b"!<arch>\n")
    (host_dir / "swift-bindings" / "a.swift").write_text("//\n", encoding="utf-8")
    (headers_dir / "aFFI.h").write_text("//\n", encoding="utf-8")
    (headers_dir / "module.modulemap").write_text("module MyFFI {}\n", encoding="utf-8")

    linux_dir = create_linux_library(project, CargoProfile.RELEASE, host_dir)

    assert linux_dir == tmp_path / "target" / "release" / "MyFFI-linux"
    assert sorted(p.name for p in linux_dir.iterdir()) == [
        "MyFFI.a",
        "aFFI.h",
        "module.modulemap",
    ]
    assert [p.name for p in project.swift_wrapper_dir().iterdir()] == ["a.swift"]


def test_default_platforms() -> None:
    assert default_platforms("darwin") == ApplePlatform.all()
    assert default_platforms("linux") == []


def test_build_for_the_host(project: Project, config: XcpackConfig, fake_cargo, tmp_path) -> None:
    build(project, config, CargoProfile.RELEASE, [])

    assert len(fake_cargo) == 1
    assert "--target" not in fake_cargo[0][0]
    linux_dir = tmp_path / "target" / "release" / "MyFFI-linux"
    assert (linux_dir / "module.modulemap").read_text(encoding="utf-8") == render_module_map(
        "MyFFI", ["aFFI.h"]
    )
    wrapper = (project.swift_wrapper_dir() / "a.swift").read_text(encoding="utf-8")
    assert wrapper.startswith("import MyFFI\n\n")
    assert "fileprivate protocol UniffiForeignFutureTask {" in wrapper


def test_build_for_ios_creates_xcframework(
    project: Project, config: XcpackConfig, fake_cargo
) -> None:
    toolchain = FakeToolchain()

    build(project, config, CargoProfile.RELEASE, [ApplePlatform.IOS], toolchain=toolchain)

    assert len(fake_cargo) == 3
    assert len(toolchain.lipo_calls) == 1
    libraries, _ = toolchain.bundler_calls[0]
    assert len(libraries) == 2
    xcframework = project.xcframework_path()
    assert (xcframework / "ios-sim" / "Headers" / "MyFFI" / "aFFI.h").is_file()
    wrapper = (project.swift_wrapper_dir() / "a.swift").read_text(encoding="utf-8")
    assert wrapper.startswith("import MyFFI\n\n")
