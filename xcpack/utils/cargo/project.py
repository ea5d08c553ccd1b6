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

from pathlib import Path
from typing import Optional

from xcpack.utils.apple.platform import CargoProfile
from xcpack.utils.cargo.graph import PackageNode, discover, root
from xcpack.utils.cargo.metadata import CargoMetadata, ensure_workspace_root, load_cargo_metadata


class Project:
    """The cargo workspace being packaged, and where its outputs go."""

    def __init__(self, ffi_module_name: str, cargo_metadata: CargoMetadata):
        self.ffi_module_name = ffi_module_name
        self.cargo_metadata = cargo_metadata
        self._binding_package: Optional[PackageNode] = None

    @classmethod
    def load(cls, ffi_module_name: str, current_dir=None) -> "Project":
        """Load the workspace in current_dir, which must be its root."""
        metadata = load_cargo_metadata(cwd=current_dir)
        ensure_workspace_root(metadata, current_dir)
        return cls(ffi_module_name, metadata)

    @property
    def workspace_root(self) -> Path:
        return self.cargo_metadata.workspace_root

    @property
    def target_directory(self) -> Path:
        return self.cargo_metadata.target_directory

    def binding_package(self) -> PackageNode:
        """The top-level package that needs Swift bindings."""
        if self._binding_package is None:
            self._binding_package = root(discover(self.cargo_metadata.packages))
        return self._binding_package

    def xcframework_path(self) -> Path:
        return self.target_directory / self.ffi_module_name / f"{self.ffi_module_name}.xcframework"

    def swift_wrapper_dir(self) -> Path:
        return self.target_directory / self.ffi_module_name / "swift-wrapper"

    def linux_library_path(self, profile: CargoProfile) -> Path:
        return self.target_directory / profile.dir_name / f"{self.ffi_module_name}-linux"
