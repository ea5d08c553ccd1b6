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
cargo metadata loading.

Only the parts of `cargo metadata --format-version 1` that xcpack needs are
kept: the workspace root, the target directory and each package's name, id,
manifest path and declared dependencies.
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from xcpack.utils.cmd.cmd_util import run_tool
from xcpack.utils.errors import ConfigurationError, ProcessError


@dataclass
class CargoDependency:
    name: str
    # None for normal dependencies, "dev" or "build" otherwise
    kind: Optional[str] = None
    optional: bool = False

    @property
    def is_normal(self) -> bool:
        return self.kind in (None, "normal")


@dataclass
class CargoPackage:
    name: str
    id: str
    manifest_path: Path
    dependencies: List[CargoDependency] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "CargoPackage":
        return cls(
            name=data["name"],
            id=data["id"],
            manifest_path=Path(data["manifest_path"]),
            dependencies=[
                CargoDependency(
                    name=dep["name"],
                    kind=dep.get("kind"),
                    optional=bool(dep.get("optional", False)),
                )
                for dep in data.get("dependencies", [])
            ],
        )


@dataclass
class CargoMetadata:
    workspace_root: Path
    target_directory: Path
    packages: List[CargoPackage]

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "CargoMetadata":
        return cls(
            workspace_root=Path(data["workspace_root"]),
            target_directory=Path(data["target_directory"]),
            packages=[CargoPackage.from_json(p) for p in data.get("packages", [])],
        )


def load_cargo_metadata(manifest_path=None, no_deps: bool = False, cwd=None) -> CargoMetadata:
    """
    Run `cargo metadata` and parse its output.

    Args:
        manifest_path: Cargo.toml to query, defaults to the one in cwd
        no_deps: only list the workspace members
        cwd: working directory for cargo
    """
    command = ["cargo", "metadata", "--format-version", "1"]
    if no_deps:
        command.append("--no-deps")
    if manifest_path is not None:
        command.extend(["--manifest-path", str(manifest_path)])
    try:
        output = run_tool(command, cwd=cwd, echo=False)
    except ProcessError as e:
        raise ConfigurationError(f"Can't get cargo metadata: {e}") from e
    try:
        return CargoMetadata.from_json(json.loads(output.stdout))
    except (ValueError, KeyError) as e:
        raise ConfigurationError(f"Can't parse cargo metadata: {e}") from e


def workspace_root_of(package) -> Path:
    """Workspace root of the checkout that contains package."""
    return load_cargo_metadata(manifest_path=package.manifest_path, no_deps=True).workspace_root


def ensure_workspace_root(metadata: CargoMetadata, current_dir=None):
    current_dir = Path(current_dir or os.getcwd()).resolve()
    if metadata.workspace_root.resolve() != current_dir:
        raise ConfigurationError(
            f"The current directory is not the cargo root directory: {current_dir} "
            f"(workspace root is {metadata.workspace_root})"
        )
