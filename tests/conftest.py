import shutil
from collections.abc import Callable
from pathlib import Path
from typing import Optional

import pytest

from xcpack.utils.cargo.graph import BINDINGS_CONFIG_FILE
from xcpack.utils.cargo.metadata import CargoDependency, CargoMetadata, CargoPackage
from xcpack.utils.errors import BundlerError, MergeError

# llvm-target reported by rustc for the triples xcpack builds
LLVM_TARGETS = {
    "aarch64-apple-ios": "arm64-apple-ios",
    "x86_64-apple-ios": "x86_64-apple-ios-simulator",
    "aarch64-apple-ios-sim": "arm64-apple-ios-simulator",
    "x86_64-apple-darwin": "x86_64-apple-macosx",
    "aarch64-apple-darwin": "arm64-apple-macosx",
    "arm64_32-apple-watchos": "arm64_32-apple-watchos",
    "x86_64-apple-watchos-sim": "x86_64-apple-watchos-simulator",
    "aarch64-apple-watchos-sim": "arm64-apple-watchos-simulator",
    "aarch64-apple-tvos": "arm64-apple-tvos",
    "aarch64-apple-tvos-sim": "arm64-apple-tvos-simulator",
}

FFI_HEADER = "// generated\nvoid uniffi_mycrate_fn_hello(void);\n"
MODULE_MAP = 'module MyFFI {\n    header "mycrateFFI.h"\n    export *\n}\n'


class FakeToolchain:
    """Records the external tool calls and writes outputs shaped like the real tools'."""

    def __init__(self, fail_merge: bool = False, fail_bundler: bool = False):
        self.fail_merge = fail_merge
        self.fail_bundler = fail_bundler
        self.spec_calls: list[str] = []
        self.lipo_calls: list[tuple[list[Path], Path]] = []
        self.bundler_calls: list[tuple[list[tuple[Path, Path]], Path]] = []

    def target_spec(self, triple: str) -> dict:
        self.spec_calls.append(triple)
        return {"llvm-target": LLVM_TARGETS.get(triple, triple)}

    def lipo(self, src_libs, dst_lib):
        self.lipo_calls.append(([Path(p) for p in src_libs], Path(dst_lib)))
        if self.fail_merge:
            raise MergeError(["xcrun", "lipo"], 1, "", "lipo: boom")
        with open(dst_lib, "wb") as out:
            for lib in src_libs:
                out.write(Path(lib).read_bytes())
        return Path(dst_lib)

    def create_xcframework(self, libraries, output):
        libraries = [(Path(lib), Path(headers)) for lib, headers in libraries]
        self.bundler_calls.append((libraries, Path(output)))
        if self.fail_bundler:
            raise BundlerError(["xcodebuild"], 70, "", "xcodebuild: boom")
        output = Path(output)
        output.mkdir(parents=True)
        (output / "Info.plist").write_text("<plist/>\n", encoding="utf-8")
        for lib, headers in libraries:
            # merged libraries live in <temp>/<identity>/
            platform_dir = output / lib.parent.name
            platform_dir.mkdir()
            shutil.copy2(lib, platform_dir / lib.name)
            shutil.copytree(headers, platform_dir / "Headers")
        return output


@pytest.fixture
def toolchain() -> FakeToolchain:
    return FakeToolchain()


@pytest.fixture
def cargo_target_dir(tmp_path: Path) -> Path:
    path = tmp_path / "target"
    path.mkdir()
    return path


@pytest.fixture
def make_slice(cargo_target_dir: Path) -> Callable[..., Path]:
    """Lay out target/<triple>/<profile>/ the way cargo and the binding generator leave it."""

    def _make_slice(
        triple: str,
        profile_dir: str = "release",
        header: str = FFI_HEADER,
        swift_source: str = "import MyFFI\npublic func hello() {}\n",
    ) -> Path:
        built_dir = cargo_target_dir / triple / profile_dir
        bindings_dir = built_dir / "swift-bindings"
        headers_dir = bindings_dir / "Headers"
        headers_dir.mkdir(parents=True)
        (built_dir / "libmycrate.a").write_bytes(f"!<arch>{triple}\n".encode())
        (built_dir / "libmycrate.d").write_text("deps\n", encoding="utf-8")
        (bindings_dir / "mycrate.swift").write_text(swift_source, encoding="utf-8")
        (headers_dir / "mycrateFFI.h").write_text(header, encoding="utf-8")
        (headers_dir / "module.modulemap").write_text(MODULE_MAP, encoding="utf-8")
        return built_dir

    return _make_slice


@pytest.fixture
def make_package(tmp_path: Path) -> Callable[..., CargoPackage]:
    """A cargo package checked out under tmp_path/<name>/."""

    def _make_package(
        name: str,
        deps: tuple[str, ...] = (),
        bindings: bool = True,
        bindings_config: bool = True,
        package_id: Optional[str] = None,
        uniffi_kind: Optional[str] = None,
        uniffi_optional: bool = False,
    ) -> CargoPackage:
        package_dir = tmp_path / name
        package_dir.mkdir(parents=True, exist_ok=True)
        manifest_path = package_dir / "Cargo.toml"
        manifest_path.write_text(f'[package]\nname = "{name}"\n', encoding="utf-8")
        if bindings_config:
            (package_dir / BINDINGS_CONFIG_FILE).write_text("", encoding="utf-8")

        dependencies = [CargoDependency(d) for d in deps]
        if bindings:
            dependencies.append(
                CargoDependency("uniffi", kind=uniffi_kind, optional=uniffi_optional)
            )
        return CargoPackage(
            name=name,
            id=package_id or f"path+file://{package_dir}#{name}@0.1.0",
            manifest_path=manifest_path,
            dependencies=dependencies,
        )

    return _make_package


@pytest.fixture
def make_metadata(tmp_path: Path) -> Callable[..., CargoMetadata]:
    def _make_metadata(packages: list[CargoPackage]) -> CargoMetadata:
        return CargoMetadata(
            workspace_root=tmp_path,
            target_directory=tmp_path / "target",
            packages=packages,
        )

    return _make_metadata
