#
# Copyright 2024 xcpack Project Authors. All rights reserved.
# Use of this source code is governed by a MIT-style
# license that can be found at
#
# https://opensource.org/license/MIT
#
# The above copyright notice and this permission
# notice shall be included in all copies or
# substantial portions of the Software.

"""
Swift Package Manager manifest generation for xcpack.

Every binding package gets two SwiftPM targets:
- a public target with the hand written Swift code found in the package's
  checkout under native/swift/Sources/<Target>/
- an internal target with the generated wrapper file from the
  swift-wrapper directory

Package.swift is rendered with copier from xcpack/templates/spm.
"""

import os
import shutil
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional

from copier import run_copy

from xcpack.build_scripts.build_utils import only_subdir
from xcpack.utils.apple.config import XcpackConfig
from xcpack.utils.apple.platform import ApplePlatform, CargoProfile
from xcpack.utils.cargo.graph import PackageNode, check_sourcing, unique_packages
from xcpack.utils.cargo.metadata import workspace_root_of
from xcpack.utils.cargo.project import Project
from xcpack.utils.cmd.cmd_util import run_tool
from xcpack.utils.errors import ArtifactNotFoundError, ConfigurationError

TEMPLATE_DIR = Path(__file__).resolve().parent.parent.parent / "templates" / "spm"

SWIFT_CODE_DIR = Path("native") / "swift"

SWIFT_PLATFORM_NAMES = {
    ApplePlatform.IOS: "iOS",
    ApplePlatform.MACOS: "macOS",
    ApplePlatform.TVOS: "tvOS",
    ApplePlatform.WATCHOS: "watchOS",
}


@dataclass
class TargetDescriptor:
    """A SwiftPM target generated for one binding package."""

    name: str
    path: str
    dependencies: List[str] = field(default_factory=list)
    sources: List[str] = field(default_factory=list)
    test_path: str = ""
    has_test_resources: bool = False


@dataclass
class PackageTargets:
    package: str
    public: TargetDescriptor
    internal: TargetDescriptor


def relative_path(path, base) -> str:
    return os.path.relpath(Path(path).resolve(), Path(base).resolve())


def unique_names(names: List[str]) -> List[str]:
    """Drop repeated names, first occurrence wins."""
    result = []
    for name in names:
        if name not in result:
            result.append(name)
    return result


class SPMResolver:
    """Turn the binding package graph into SwiftPM targets and a Package.swift."""

    def __init__(
        self,
        project: Project,
        package_name_map: Dict[str, str],
        workspace_root_of: Callable[[PackageNode], Path] = workspace_root_of,
    ):
        """
        Args:
            project: the cargo workspace
            package_name_map: cargo package name -> public SwiftPM target name
            workspace_root_of: finds the checkout of a package, runs cargo metadata by default
        """
        self.project = project
        self.package_name_map = package_name_map
        self.workspace_root_of = workspace_root_of

    def public_target_name(self, package: PackageNode) -> str:
        name = self.package_name_map.get(package.name)
        if not name:
            raise ConfigurationError(f"No module name specified for package {package.name}")
        return name

    def package_targets(self, package: PackageNode) -> PackageTargets:
        check_sourcing(package.package_id)

        root_dir = self.project.workspace_root.resolve()
        swift_code_dir = (self.workspace_root_of(package) / SWIFT_CODE_DIR).resolve()
        if not swift_code_dir.is_dir():
            raise ArtifactNotFoundError(swift_code_dir, f"Swift code for package {package.name}")

        # There could be 'Sources' and 'Tests' directories in the swift code directory.
        sources_dir = only_subdir(swift_code_dir / "Sources")
        tests_dir = only_subdir(swift_code_dir / "Tests")

        internal_name = package.module_name()
        public = TargetDescriptor(
            name=self.public_target_name(package),
            path=relative_path(sources_dir, root_dir),
            dependencies=unique_names(
                [internal_name] + [self.public_target_name(dep) for dep in package.dependencies]
            ),
            test_path=relative_path(tests_dir, root_dir),
            has_test_resources=(tests_dir / "Resources").exists(),
        )
        internal = TargetDescriptor(
            name=internal_name,
            path=relative_path(self.project.swift_wrapper_dir(), root_dir),
            dependencies=unique_names(
                [self.project.ffi_module_name]
                + [dep.module_name() for dep in package.dependencies]
            ),
            sources=[package.swift_wrapper_file_name()],
        )
        return PackageTargets(package=package.name, public=public, internal=internal)

    def resolve_targets(self) -> List[PackageTargets]:
        """Targets of every binding package, top-level package first."""
        packages = unique_packages(self.project.binding_package())
        print(f"Found {len(packages)} binding packages")
        for package in packages:
            print(f"  - {package.name}")
        return [self.package_targets(p) for p in packages]

    def render_data(self, project_name: str, config: XcpackConfig) -> dict:
        if bool(config.release_url) != bool(config.release_checksum):
            raise ConfigurationError(
                "spm.release_url and spm.release_checksum must be set together"
            )
        targets = self.resolve_targets()
        root_dir = self.project.workspace_root.resolve()
        return {
            "project_name": project_name,
            "package_name": targets[0].public.name,
            "ffi_module_name": self.project.ffi_module_name,
            "ffi_wrapper_path": relative_path(self.project.swift_wrapper_dir(), root_dir),
            "xcframework_path": relative_path(self.project.xcframework_path(), root_dir),
            "linux_library_path": relative_path(
                self.project.linux_library_path(CargoProfile.RELEASE), root_dir
            ),
            "release_url": config.release_url,
            "release_checksum": config.release_checksum,
            "platforms": [
                {"name": SWIFT_PLATFORM_NAMES[p], "version": config.min_versions[p]}
                for p in ApplePlatform.all()
            ],
            "targets": [asdict(t.public) for t in targets],
            "internal_targets": [asdict(t.internal) for t in targets],
        }

    def generate_swift_package(
        self, project_name: str, config: Optional[XcpackConfig] = None
    ) -> Path:
        """
        Write Package.swift at the workspace root.

        Returns:
            Path: the generated Package.swift
        """
        if config is None:
            config = XcpackConfig({}, str(self.project.workspace_root))

        data = self.render_data(project_name, config)
        dest_dir = self.project.workspace_root
        run_copy(
            str(TEMPLATE_DIR),
            str(dest_dir),
            data=data,
            unsafe=True,
            defaults=True,
            overwrite=True,
            quiet=True,
        )
        dest = Path(dest_dir) / "Package.swift"
        print(f"📦 Generated {dest}")

        if config.format_manifest:
            if shutil.which("swift"):
                run_tool(["swift", "format", "--in-place", dest])
            else:
                print("   ⚠️  swift not found, Package.swift is not formatted")
        return dest


def generate_swift_package(
    project: Project,
    project_name: str,
    package_name_map: Dict[str, str],
    config: Optional[XcpackConfig] = None,
) -> Path:
    resolver = SPMResolver(project, package_name_map)
    return resolver.generate_swift_package(project_name, config)
