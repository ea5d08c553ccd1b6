#!/usr/bin/env python3
# -- coding: utf-8 --
#
# xcframework.py
# xcpack
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
XCFramework packaging engine.

`xcodebuild -create-xcframework` rejects two -library arguments for the same
platform, e.g. x86_64-apple-ios and aarch64-apple-ios-sim are both the iOS
simulator. XCFramework, LibraryGroup and Slice work together to:
- group the per-triple static libraries by platform identity
- merge every group into one fat library with lipo
- hand exactly one (library, headers) pair per platform to xcodebuild
- namespace each platform's Headers directory by module name
- copy the architecture independent Swift binding files out of one slice

Input layout, produced by cargo and the binding generator:
    <target>/<triple>/<debug|release>/lib<name>.a
    <target>/<triple>/<debug|release>/swift-bindings/*.swift
    <target>/<triple>/<debug|release>/swift-bindings/Headers/
"""

import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from xcpack.build_scripts.build_utils import (
    copy_file,
    files_with_extension,
    hash_tree,
    only_file_with_extension,
    recreate_dir,
    replace_dir,
)
from xcpack.utils.apple.platform import CargoProfile, PlatformIdentity, PlatformIdentityResolver
from xcpack.utils.context.context import PackagingContext, packaging_context
from xcpack.utils.errors import ArtifactNotFoundError, BundlePatchError, HeaderMismatchError

SWIFT_BINDINGS_DIR_NAME = "swift-bindings"
HEADERS_DIR_NAME = "Headers"
SWIFT_WRAPPER_STAGING_DIR_NAME = "swift-wrapper"


@dataclass
class Slice:
    """A thin static library built with `cargo build --target <triple> --profile <profile>`."""

    target: str
    profile: CargoProfile

    def built_product_dir(self, cargo_target_dir: Path) -> Path:
        """Directory where cargo puts the static library for this triple and profile."""
        return Path(cargo_target_dir) / self.target / self.profile.dir_name

    def library_path(self, cargo_target_dir: Path) -> Path:
        # More than one library means more than one cargo package was built
        # into this directory, and we can't tell which one to ship.
        return only_file_with_extension(self.built_product_dir(cargo_target_dir), "a")

    def swift_bindings_dir(self, cargo_target_dir: Path) -> Path:
        path = self.built_product_dir(cargo_target_dir) / SWIFT_BINDINGS_DIR_NAME
        if not path.is_dir():
            raise ArtifactNotFoundError(path, "Swift bindings")
        return path

    def headers_dir(self, cargo_target_dir: Path) -> Path:
        path = self.swift_bindings_dir(cargo_target_dir) / HEADERS_DIR_NAME
        if not path.is_dir():
            raise ArtifactNotFoundError(path, "Headers")
        return path


@dataclass
class LibraryGroup:
    """Static libraries built for the same platform, merged into one fat library."""

    id: PlatformIdentity
    slices: List[Slice] = field(default_factory=list)

    def merge(self, context: PackagingContext, library_file_name: str) -> Path:
        """
        Merge the slices into <temp>/<identity>/<library_file_name>.a.

        Returns:
            Path: the merged static library
        """
        libraries = [s.library_path(context.cargo_target_dir) for s in self.slices]

        out_dir = recreate_dir(context.temp_dir / str(self.id))
        dest = out_dir / f"{library_file_name}.a"
        if len(libraries) == 1:
            shutil.copy2(libraries[0], dest)
        else:
            context.toolchain.lipo(libraries, dest)
        return dest

    def headers_dir(self, context: PackagingContext) -> Path:
        """
        Headers of the group, taken from the first slice.

        All slices are built from the same source, so their generated headers
        should be identical. With context.verify_headers that is checked
        instead of assumed.
        """
        first = self.slices[0].headers_dir(context.cargo_target_dir)
        if context.verify_headers and len(self.slices) > 1:
            dirs = [s.headers_dir(context.cargo_target_dir) for s in self.slices]
            if len({hash_tree(d) for d in dirs}) != 1:
                raise HeaderMismatchError(str(self.id), dirs)
        return first

    def swift_binding_files(self, cargo_target_dir: Path) -> List[Path]:
        return files_with_extension(self.slices[0].swift_bindings_dir(cargo_target_dir), "swift")


@dataclass
class XCFrameworkBundle:
    """An assembled XCFramework, not yet moved to its destination."""

    path: Path
    libraries: List[Tuple[Path, Path]]


class XCFramework:
    """A xcframework that contains static libraries for multiple platforms."""

    def __init__(self, libraries: List[LibraryGroup]):
        self.libraries = libraries

    @classmethod
    def from_targets(
        cls,
        targets: Sequence[str],
        profile: CargoProfile,
        resolver: PlatformIdentityResolver,
    ) -> "XCFramework":
        """
        Partition targets into one LibraryGroup per platform identity.

        Groups keep the order in which their first triple appears.
        """
        groups: Dict[PlatformIdentity, LibraryGroup] = {}
        for target in targets:
            identity = resolver.resolve(target)
            group = groups.setdefault(identity, LibraryGroup(id=identity))
            group.slices.append(Slice(target, profile))
        return cls(list(groups.values()))

    def preview(self):
        print("Creating xcframework to include the following targets:")
        for lib in self.libraries:
            print(f"  Platform: {lib.id}")
            for slice in lib.slices:
                print(f"    - {slice.target}")

    def assemble(self, context: PackagingContext, library_file_name: str) -> XCFrameworkBundle:
        """Merge every group and run xcodebuild once, inside the scratch directory."""
        temp_dest = context.temp_dir / f"{library_file_name}.xcframework"
        if temp_dest.exists():
            shutil.rmtree(temp_dest)

        library_args = []
        for library in self.libraries:
            lib = library.merge(context, library_file_name)
            headers = library.headers_dir(context)
            library_args.append((lib, headers))

        context.toolchain.create_xcframework(library_args, temp_dest)
        return XCFrameworkBundle(path=temp_dest, libraries=library_args)

    def patch(self, bundle: XCFrameworkBundle, module_name: str):
        """
        Move each platform's headers into Headers/<module_name>/.

        Two XCFrameworks with a flat Headers/module.modulemap can't both be
        linked into one Xcode target: https://github.com/jessegrosjean/module-map-error

        Note:
            This is not idempotent. A bundle that already has
            Headers/<module_name>/ is rejected with BundlePatchError.
        """
        print("Patching XCFramework to have a unique header directory")

        for path in sorted(Path(bundle.path).iterdir()):
            if not path.is_dir():
                continue
            headers_dir = path / HEADERS_DIR_NAME
            if not headers_dir.is_dir():
                raise BundlePatchError(f"No {HEADERS_DIR_NAME} directory in {path}")

            new_headers_dir = headers_dir / module_name
            if new_headers_dir.exists():
                raise BundlePatchError(f"{path} has already been patched: {new_headers_dir} exists")

            non_lib_files = [f for f in sorted(headers_dir.iterdir()) if f.suffix != ".a"]
            new_headers_dir.mkdir()
            for file in non_lib_files:
                os.replace(file, new_headers_dir / file.name)

    def extract_binding_sources(self, context: PackagingContext, swift_wrapper_dir: Path) -> Path:
        """
        Copy the Swift binding files of one group into swift_wrapper_dir.

        Any group will do: the generated Swift code does not depend on the architecture.
        """
        swift_wrapper_dir = recreate_dir(swift_wrapper_dir)
        for file in self.libraries[0].swift_binding_files(context.cargo_target_dir):
            copy_file(file, swift_wrapper_dir / file.name)
        return swift_wrapper_dir

    def create(
        self,
        context: PackagingContext,
        library_file_name: str,
        dest: Path,
        swift_wrapper_dir: Path,
    ) -> Path:
        """
        Assemble, patch, then move the XCFramework to dest.

        dest and swift_wrapper_dir are only touched once the patched
        XCFramework and the Swift sources are complete in the scratch
        directory. Whatever was there before is replaced, not merged.
        """
        self.preview()

        bundle = self.assemble(context, library_file_name)
        self.patch(bundle, library_file_name)
        staged_sources = self.extract_binding_sources(
            context, context.temp_dir / SWIFT_WRAPPER_STAGING_DIR_NAME
        )

        dest = Path(dest)
        replace_dir(bundle.path, dest)
        # the sources only follow a bundle that made it to dest
        replace_dir(staged_sources, Path(swift_wrapper_dir))
        print(f"xcframework created at {dest}")
        print(f"Swift bindings created at {swift_wrapper_dir}")

        return dest


def create_xcframework(
    cargo_target_dir,
    targets: Sequence[str],
    profile: CargoProfile,
    name: str,
    xcframework,
    swift_wrapper,
    toolchain,
    verify_headers: bool = True,
    resolver: Optional[PlatformIdentityResolver] = None,
) -> Path:
    """
    Package the static libraries of targets into one XCFramework.

    Args:
        cargo_target_dir: cargo's target directory
        targets: rust target triples that have been built
        profile: cargo profile the triples were built with
        name: FFI module name, used for the library and header directory
        xcframework: destination of <name>.xcframework
        swift_wrapper: destination directory of the Swift binding files
        toolchain: XcodeToolchain, or a stand-in with the same methods
        verify_headers: check slices of one platform generated equal headers
        resolver: defaults to a resolver backed by toolchain.target_spec

    Returns:
        Path: the XCFramework at its destination
    """
    if resolver is None:
        resolver = PlatformIdentityResolver(toolchain.target_spec)

    framework = XCFramework.from_targets(targets, profile, resolver)
    with packaging_context(
        cargo_target_dir, name, toolchain, verify_headers=verify_headers
    ) as context:
        return framework.create(context, name, Path(xcframework), Path(swift_wrapper))
