#!/usr/bin/env python3
# -- coding: utf-8 --
#
# build_utils.py
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
Build utility functions shared by the build pipeline and the packaging engine.

This module provides:
- File operations (recreate, move, copy, list by extension, hash a tree)
- The Xcode toolchain wrapper (rustc target spec, lipo, xcodebuild)
"""

import hashlib
import json
import os
import shutil
from pathlib import Path
from typing import List, Sequence, Tuple

from xcpack.utils.cmd.cmd_util import DEFAULT_TIMEOUT_SECOND, run_tool
from xcpack.utils.errors import (
    AmbiguousArtifactError,
    ArtifactNotFoundError,
    BundlerError,
    MergeError,
    ProcessError,
    ResolutionError,
)


def recreate_dir(path) -> Path:
    """
    Remove a directory with all its contents and create it again, empty.

    Args:
        path: Directory path

    Returns:
        Path: the recreated directory
    """
    path = Path(path)
    if path.exists():
        shutil.rmtree(path)
    path.mkdir(parents=True)
    return path


def replace_dir(src, dst) -> Path:
    """
    Move directory src to dst, removing whatever dst held before.

    Returns:
        Path: dst
    """
    dst = Path(dst)
    if dst.exists():
        shutil.rmtree(dst)
    dst.parent.mkdir(parents=True, exist_ok=True)
    os.replace(src, dst)
    return dst


def move_file(src, dst) -> Path:
    """
    Move a file into a directory, or to a new file path.

    Args:
        src: Source file, must exist
        dst: Destination directory or file path

    Returns:
        Path: where the file ended up
    """
    src = Path(src)
    dst = Path(dst)
    if not src.is_file():
        raise ArtifactNotFoundError(src, "file")
    destination = dst / src.name if dst.is_dir() else dst
    os.replace(src, destination)
    return destination


def copy_file(src, dst) -> Path:
    """
    Copy a file or directory, creating destination directories as needed.

    Note:
        If src is a directory, the entire tree is copied recursively.
    """
    src = Path(src)
    dst = Path(dst)
    if not src.exists():
        raise ArtifactNotFoundError(src)
    dst.parent.mkdir(parents=True, exist_ok=True)
    if src.is_file():
        shutil.copy2(src, dst)
    else:
        shutil.copytree(src, dst, dirs_exist_ok=True)
    return dst


def files_with_extension(path, ext: str) -> List[Path]:
    """
    List the regular files in path (not recursive) with the given extension.

    Returns:
        list: sorted file paths, empty if path does not exist
    """
    path = Path(path)
    if not path.is_dir():
        return []
    suffix = "." + ext.lstrip(".")
    return sorted(p for p in path.iterdir() if p.is_file() and p.suffix == suffix)


def only_file_with_extension(path, ext: str, what: str = "static library") -> Path:
    """Return the single file with ext in path, or raise AmbiguousArtifactError."""
    candidates = files_with_extension(path, ext)
    if len(candidates) != 1:
        raise AmbiguousArtifactError(path, candidates, what)
    return candidates[0]


def only_subdir(path) -> Path:
    """Return the single entry of a directory, which must be a directory."""
    path = Path(path)
    if not path.is_dir():
        raise ArtifactNotFoundError(path, "directory")
    entries = sorted(path.iterdir())
    if len(entries) != 1 or not entries[0].is_dir():
        raise AmbiguousArtifactError(path, entries, "subdirectory")
    return entries[0]


def hash_tree(path) -> str:
    """
    SHA256 over every file of a directory tree, keyed by relative path.

    Two trees have equal hashes iff they hold the same files with the same bytes.
    """
    path = Path(path)
    sha256_hash = hashlib.sha256()
    for file_path in sorted(p for p in path.rglob("*") if p.is_file()):
        sha256_hash.update(file_path.relative_to(path).as_posix().encode("utf-8"))
        sha256_hash.update(b"\0")
        with open(file_path, "rb") as f:
            for byte_block in iter(lambda: f.read(4096), b""):
                sha256_hash.update(byte_block)
        sha256_hash.update(b"\0")
    return sha256_hash.hexdigest()


class XcodeToolchain:
    """
    External Apple and rust tools used by the packaging engine.

    Requires Xcode command-line tools and rustc on PATH.
    """

    def __init__(self, timeout=DEFAULT_TIMEOUT_SECOND):
        self.timeout = timeout

    def target_spec(self, triple: str) -> dict:
        """Return `rustc --print target-spec-json` for triple as a dict."""
        command = [
            "rustc",
            "-Z",
            "unstable-options",
            "--print",
            "target-spec-json",
            "--target",
            triple,
        ]
        try:
            output = run_tool(
                command,
                timeout=self.timeout,
                env={"RUSTC_BOOTSTRAP": "1"},
                echo=False,
            )
        except ProcessError as e:
            raise ResolutionError(triple, f"Failed to query target spec of {triple}: {e}") from e
        try:
            return json.loads(output.stdout)
        except ValueError as e:
            raise ResolutionError(
                triple, f"Failed to parse target spec of {triple} as JSON: {e}"
            ) from e

    def lipo(self, src_libs: Sequence[Path], dst_lib: Path) -> Path:
        """
        Create a universal (fat) static library from single architecture ones.

        Example:
            lipo(['x86_64/libfoo.a', 'aarch64/libfoo.a'], 'macos/libfoo.a')
        """
        command = ["xcrun", "lipo", "-create", *src_libs, "-output", dst_lib]
        run_tool(command, timeout=self.timeout, error_class=MergeError)
        return Path(dst_lib)

    def create_xcframework(self, libraries: Sequence[Tuple[Path, Path]], output: Path) -> Path:
        """
        Run xcodebuild -create-xcframework with one -library/-headers pair per platform.

        Note:
            xcodebuild rejects two libraries for the same platform.
        """
        command = ["xcodebuild", "-create-xcframework"]
        for library, headers in libraries:
            command.extend(["-library", library, "-headers", headers])
        command.extend(["-output", output])
        run_tool(command, timeout=self.timeout, error_class=BundlerError)
        return Path(output)
