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
Dependency graph of the cargo packages that ship Swift bindings.

A binding package depends on uniffi and has a uniffi.toml next to its
Cargo.toml. Exactly one of them must be the top-level package, the one no
other binding package depends on; its traversal lists every package that
needs a Swift target.
"""

from pathlib import Path
from typing import Dict, Iterator, List, Sequence

# Try to import tomli for Python < 3.11, tomllib for Python >= 3.11
try:
    import tomllib
except ModuleNotFoundError:
    import tomli as tomllib

from xcpack.utils.cargo.metadata import CargoPackage
from xcpack.utils.errors import (
    AmbiguousRootError,
    ConfigurationError,
    DependencyCycleError,
    UnsupportedSourcingError,
)

BINDINGS_DEPENDENCY = "uniffi"
BINDINGS_CONFIG_FILE = "uniffi.toml"
SUPPORTED_SOURCE_PREFIXES = ("git+", "path+")


class PackageNode:
    """One cargo package that needs Swift bindings, with its binding dependencies."""

    def __init__(self, name: str, manifest_path, package_id: str = ""):
        self.name = name
        self.manifest_path = Path(manifest_path)
        self.package_id = package_id
        self.dependencies: List["PackageNode"] = []

    def __repr__(self) -> str:
        return f"PackageNode({self.name!r}, dependencies={[d.name for d in self.dependencies]})"

    def depends_on(self, other: str) -> bool:
        return any(d.name == other for d in self.dependencies)

    def swift_wrapper_file_name(self) -> str:
        return f"{self.name}.swift"

    def bindings_config(self) -> dict:
        """The [bindings.swift] table of the package's uniffi.toml."""
        config_file = self.manifest_path.with_name(BINDINGS_CONFIG_FILE)
        if not config_file.is_file():
            return {}
        try:
            with open(config_file, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigurationError(f"Invalid {config_file}: {e}") from e
        return data.get("bindings", {}).get("swift", {})

    def module_name(self) -> str:
        """Swift module of the generated wrapper, the internal SwiftPM target."""
        return self.bindings_config().get("module_name", self.name.replace("-", "_"))

    def ffi_module_name(self) -> str:
        """Clang module of the generated C header."""
        return self.bindings_config().get("ffi_module_name", f"{self.module_name()}FFI")

    def iter(self) -> Iterator["PackageNode"]:
        """
        Depth first walk from this package, a package before its dependencies.

        The walk uses a LIFO stack, so siblings come out in reverse declaration
        order. A package reachable through two paths is yielded once per path.
        Each call starts a fresh walk.

        Raises:
            DependencyCycleError: a package depends on itself, directly or not
        """
        stack = [(self, (self.name,))]
        while stack:
            package, path = stack.pop()
            yield package

            for dep in package.dependencies:
                if dep.name in path:
                    raise DependencyCycleError(list(path) + [dep.name])
                stack.append((dep, path + (dep.name,)))


def is_binding_package(package: CargoPackage) -> bool:
    depends_on_bindings = any(
        d.name == BINDINGS_DEPENDENCY and not d.optional and d.is_normal
        for d in package.dependencies
    )
    has_bindings_config = package.manifest_path.with_name(BINDINGS_CONFIG_FILE).exists()
    return depends_on_bindings and has_bindings_config


def check_sourcing(package_id: str):
    """Swift code is found relative to the checkout, which registry packages don't have."""
    if not package_id.startswith(SUPPORTED_SOURCE_PREFIXES):
        raise UnsupportedSourcingError(package_id)


def discover(packages: Sequence[CargoPackage]) -> List[PackageNode]:
    """
    Build PackageNodes for the binding packages among packages.

    Dependencies on packages that are not binding packages are dropped. A
    dependency declared more than once (for example both as a normal and as a
    build dependency) keeps one edge per declaration.

    Raises:
        UnsupportedSourcingError: a binding package comes from a registry
    """
    binding_packages = [p for p in packages if is_binding_package(p)]
    for package in binding_packages:
        check_sourcing(package.id)

    nodes: Dict[str, PackageNode] = {}
    for package in binding_packages:
        nodes[package.name] = PackageNode(package.name, package.manifest_path, package.id)
    for package in binding_packages:
        node = nodes[package.name]
        for dep in package.dependencies:
            if dep.name in nodes:
                node.dependencies.append(nodes[dep.name])
    return list(nodes.values())


def root(nodes: Sequence[PackageNode]) -> PackageNode:
    """
    The one node no other node depends on.

    Raises:
        AmbiguousRootError: zero (cycle) or several (disconnected) such nodes
    """
    top_level = [n for n in nodes if not any(other.depends_on(n.name) for other in nodes)]
    if len(top_level) != 1:
        raise AmbiguousRootError([n.name for n in top_level])
    return top_level[0]


def iterate(node: PackageNode) -> Iterator[PackageNode]:
    return node.iter()


def unique_packages(node: PackageNode) -> List[PackageNode]:
    """iterate(node) without repeats, first occurrence wins."""
    seen = set()
    result = []
    for package in iterate(node):
        if package.name not in seen:
            seen.add(package.name)
            result.append(package)
    return result
