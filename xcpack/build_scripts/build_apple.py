#!/usr/bin/env python3
# -- coding: utf-8 --
#
# build_apple.py
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
Swift library build script.

Builds the top-level binding package for every requested target triple and
packages the result. It handles:
- Building static libraries with cargo (nightly build-std for tvOS/watchOS)
- Generating Swift sources and C headers for each static library
- Moving headers into Headers/ with a module.modulemap
- Creating the XCFramework (Apple hosts) or a Linux library directory
- Prefixing each package's Swift wrapper with the imports it needs

Output:
    - XCFramework: target/<ffi>/<ffi>.xcframework
    - Swift wrapper: target/<ffi>/swift-wrapper/<package>.swift
    - Linux library: target/<debug|release>/<ffi>-linux/
"""

import os
import tempfile
import time
from pathlib import Path
from typing import List, Optional, Sequence

from xcpack.build_scripts.build_utils import (
    XcodeToolchain,
    copy_file,
    files_with_extension,
    move_file,
    only_file_with_extension,
    recreate_dir,
)
from xcpack.build_scripts.xcframework import (
    HEADERS_DIR_NAME,
    SWIFT_BINDINGS_DIR_NAME,
    create_xcframework,
)
from xcpack.utils.apple.config import XcpackConfig
from xcpack.utils.apple.platform import ApplePlatform, CargoProfile
from xcpack.utils.cargo.graph import PackageNode, unique_packages
from xcpack.utils.cargo.project import Project
from xcpack.utils.cmd.cmd_util import exec_command, run_tool
from xcpack.utils.errors import ArtifactNotFoundError, ProcessError

MODULE_MAP_FILE_NAME = "module.modulemap"

# uniffi declares this protocol in every generated file, which clashes once
# two generated files end up in one Swift module
FOREIGN_FUTURE_PROTOCOL_LINE = "protocol UniffiForeignFutureTask {"


class PlatformTarget:
    """One platform (or the host when platform is None) of the top-level binding package."""

    def __init__(
        self,
        package: str,
        profile: CargoProfile,
        platform: Optional[ApplePlatform],
        config: XcpackConfig,
    ):
        self.package = package
        self.profile = profile
        self.platform = platform
        self.config = config

    def triples(self) -> List[str]:
        return self.platform.target_triples() if self.platform else []

    def cargo_command(self) -> List[str]:
        build = ["cargo"]
        if self.platform and self.platform.requires_nightly_toolchain():
            # TODO: pin the nightly toolchain once tvOS/watchOS std ships prebuilt
            build.extend(["+nightly", "-Z", "build-std=panic_abort,std"])

        # Include debug symbols.
        build.extend(["--config", f"profile.{self.profile}.debug=true"])
        # Abort on panic to include Rust backtrace in crash reports.
        build.extend(["--config", f'profile.{self.profile}.panic="abort"'])
        build.extend(["build", "--package", self.package, "--profile", str(self.profile)])
        return build

    def build_package(self):
        """Run cargo build once per triple of the platform, or once for the host."""
        build = self.cargo_command()
        timeout = self.config.tool_timeout

        if self.platform is None:
            err_code, err_msg = exec_command(build, timeout)
            if err_code != 0:
                raise ProcessError(build, err_code, "", err_msg,
                                   message=f"Failed to build package {self.package}")
            return

        env = self.platform.deployment_target_env(self.config.min_versions[self.platform])
        for triple in self.triples():
            cmd = build + ["--target", triple]
            err_code, err_msg = exec_command(cmd, timeout, env=env)
            if err_code != 0:
                raise ProcessError(
                    cmd, err_code, "", err_msg,
                    message=f"Failed to build package {self.package} for target {triple}",
                )

    def built_dirs(self, cargo_target_dir: Path) -> List[Path]:
        cargo_target_dir = Path(cargo_target_dir)
        if self.platform is None:
            return [cargo_target_dir / self.profile.dir_name]
        return [cargo_target_dir / t / self.profile.dir_name for t in self.triples()]

    def generate_bindings(self, cargo_target_dir: Path, ffi_module_name: str):
        for target_dir in self.built_dirs(cargo_target_dir):
            library_path = only_file_with_extension(target_dir, "a")
            out_dir = recreate_dir(library_path.parent / SWIFT_BINDINGS_DIR_NAME)

            command = [
                arg.replace("{library}", str(library_path)).replace("{out_dir}", str(out_dir))
                for arg in self.config.binding_generator
            ]
            run_tool(command, timeout=self.config.tool_timeout)

            reorganize_binding_files(out_dir, ffi_module_name)


def render_module_map(ffi_module_name: str, header_files: Sequence[str]) -> str:
    lines = [f"module {ffi_module_name} {{"]
    for header in header_files:
        lines.append(f'    header "{header}"')
    lines.append("    export *")
    lines.append("}")
    return "\n".join(lines) + "\n"


def reorganize_binding_files(bindings_dir, ffi_module_name: str) -> Path:
    """
    Move the generated C headers into Headers/ and add a module map for them.

    Returns:
        Path: the Headers directory
    """
    bindings_dir = Path(bindings_dir)
    headers_dir = recreate_dir(bindings_dir / HEADERS_DIR_NAME)

    header_files = []
    for header in files_with_extension(bindings_dir, "h"):
        header_files.append(header.name)
        move_file(header, headers_dir)

    with open(headers_dir / MODULE_MAP_FILE_NAME, "x") as f:
        f.write(render_module_map(ffi_module_name, header_files))
    return headers_dir


def swift_wrapper_prefix(package: PackageNode, project_ffi_module_name: str) -> str:
    modules_to_import = []
    for p in unique_packages(package):
        if p.name != package.name:
            modules_to_import.append(p.module_name())

    if package.ffi_module_name() != project_ffi_module_name:
        modules_to_import.append(project_ffi_module_name)

    return "".join(f"import {module}\n" for module in modules_to_import)


def update_swift_wrapper(path, package: PackageNode, project_ffi_module_name: str, temp_root):
    """Prefix the wrapper file with its imports and keep uniffi's shared protocol file private."""
    path = Path(path)
    temp_root = Path(temp_root)
    temp_root.mkdir(parents=True, exist_ok=True)

    fd, tempfile_path = tempfile.mkstemp(suffix=".swift", dir=temp_root)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as tempfile_obj:
            tempfile_obj.write(swift_wrapper_prefix(package, project_ffi_module_name))
            tempfile_obj.write("\n")
            with open(path, "r", encoding="utf-8") as original:
                for line in original:
                    if line.rstrip("\r\n") == FOREIGN_FUTURE_PROTOCOL_LINE:
                        line = "fileprivate " + line
                    tempfile_obj.write(line)
        os.replace(tempfile_path, path)
    except BaseException:
        if os.path.exists(tempfile_path):
            os.remove(tempfile_path)
        raise


def update_swift_wrappers(project: Project):
    swift_wrapper_dir = project.swift_wrapper_dir()
    temp_root = project.target_directory / "tmp"
    for package in unique_packages(project.binding_package()):
        path = swift_wrapper_dir / package.swift_wrapper_file_name()
        if not path.is_file():
            raise ArtifactNotFoundError(path, "Swift wrapper")
        update_swift_wrapper(path, package, project.ffi_module_name, temp_root)


def create_linux_library(project: Project, profile: CargoProfile, target_dir) -> Path:
    """
    Lay out the host build as a system library for SwiftPM on Linux.

    Output:
        target/<debug|release>/<ffi>-linux/{<ffi>.a, module.modulemap, *.h}
    """
    target_dir = Path(target_dir)
    static_lib = only_file_with_extension(target_dir, "a")

    bindings_dir = target_dir / SWIFT_BINDINGS_DIR_NAME
    headers_dir = bindings_dir / HEADERS_DIR_NAME
    if not headers_dir.is_dir():
        raise ArtifactNotFoundError(headers_dir, "Headers directory")

    linux_library_dir = recreate_dir(project.linux_library_path(profile))
    copy_file(headers_dir, linux_library_dir)
    copy_file(static_lib, linux_library_dir / f"{project.ffi_module_name}.a")

    swift_wrapper_dir = recreate_dir(project.swift_wrapper_dir())
    for file in files_with_extension(bindings_dir, "swift"):
        copy_file(file, swift_wrapper_dir / file.name)
    return linux_library_dir


def default_platforms(host_system: str) -> List[ApplePlatform]:
    """All Apple platforms on a macOS host; elsewhere only the host is built."""
    return ApplePlatform.all() if host_system == "darwin" else []


def build(
    project: Project,
    config: XcpackConfig,
    profile: CargoProfile,
    apple_platforms: Sequence[ApplePlatform],
    toolchain=None,
):
    """
    Build the top-level binding package and package it.

    Args:
        project: the cargo workspace
        config: xcpack configuration
        profile: cargo profile
        apple_platforms: platforms to put in the XCFramework, empty for a host build
        toolchain: XcodeToolchain, created on demand
    """
    before_time = time.time()
    package = project.binding_package().name
    print(f"==================build {package} (profile: {profile})========================")

    if apple_platforms:
        targets = [PlatformTarget(package, profile, p, config) for p in apple_platforms]
    else:
        targets = [PlatformTarget(package, profile, None, config)]

    for target in targets:
        target.build_package()
        target.generate_bindings(project.target_directory, project.ffi_module_name)

    if not apple_platforms:
        host_dir = targets[0].built_dirs(project.target_directory)[0]
        linux_dir = create_linux_library(project, profile, host_dir)
        print(f"📦 Linux library created at {linux_dir}")
    else:
        if toolchain is None:
            toolchain = XcodeToolchain(timeout=config.tool_timeout)
        create_xcframework(
            project.target_directory,
            [t for target in targets for t in target.triples()],
            profile,
            project.ffi_module_name,
            project.xcframework_path(),
            project.swift_wrapper_dir(),
            toolchain,
            verify_headers=config.verify_headers,
        )

    update_swift_wrappers(project)

    after_time = time.time()
    print(f"✅ Build finished, use time: {int(after_time - before_time)} seconds")
