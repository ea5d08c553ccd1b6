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
Error types raised by xcpack.

Every error aborts the current run. None of them is retried.
"""

from typing import List, Optional, Sequence


class XcpackError(Exception):
    """Base class for all xcpack errors."""


class ConfigurationError(XcpackError):
    """Invalid configuration, arguments or working directory."""


class ResolutionError(XcpackError):
    """A target triple could not be resolved to a platform identity."""

    def __init__(self, triple: str, message: str):
        super().__init__(message)
        self.triple = triple


class UnsupportedPlatformError(ResolutionError):
    """The OS segment of a triple is not an Apple platform we package."""


class ArtifactError(XcpackError):
    """A build artifact is missing or not what we expected."""

    def __init__(self, path, message: str):
        super().__init__(message)
        self.path = path


class AmbiguousArtifactError(ArtifactError):
    """Zero or more than one candidate where exactly one is required."""

    def __init__(self, path, candidates: Sequence, what: str = "static library"):
        self.candidates = list(candidates)
        super().__init__(
            path,
            f"Expected exactly one {what} in {path}, found {len(self.candidates)}: "
            f"{[str(c) for c in self.candidates]}",
        )


class ArtifactNotFoundError(ArtifactError):
    def __init__(self, path, what: str = "artifact"):
        super().__init__(path, f"{what} not found: {path}")


class HeaderMismatchError(ArtifactError):
    """Slices of one platform group generated different headers."""

    def __init__(self, group: str, paths: Sequence):
        self.group = group
        self.paths = list(paths)
        super().__init__(
            self.paths[0] if self.paths else None,
            f"Generated headers differ between slices of platform {group}: "
            f"{[str(p) for p in self.paths]}",
        )


class AmbiguousRootError(XcpackError):
    """The binding package graph does not have exactly one top-level package."""

    def __init__(self, candidates: List[str]):
        self.candidates = list(candidates)
        super().__init__(
            f"Expected 1 top-level package, found {len(self.candidates)}: {self.candidates}"
        )


class DependencyCycleError(XcpackError):
    def __init__(self, cycle: List[str]):
        self.cycle = list(cycle)
        super().__init__(f"Dependency cycle between binding packages: {' -> '.join(self.cycle)}")


class UnsupportedSourcingError(XcpackError):
    """A binding package is not integrated as a git repo or a local path."""

    def __init__(self, package_id: str):
        self.package_id = package_id
        super().__init__(
            f"Unsupported package id: {package_id}. Swift source code can only be found "
            "when the package is integrated as a git repo or a local path."
        )


class BundlePatchError(XcpackError):
    """The XCFramework cannot be patched (for example, it was patched already)."""


class ProcessError(XcpackError):
    """An external tool exited with a non-zero status."""

    def __init__(
        self,
        command: Sequence[str],
        returncode: Optional[int],
        stdout: str = "",
        stderr: str = "",
        message: Optional[str] = None,
    ):
        self.command = list(command)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        if message is None:
            message = (
                f"Command failed with exit code: {returncode}\n"
                f"stdout: {stdout!r}\n"
                f"stderr: {stderr!r}\n"
                f"$ {' '.join(self.command)}"
            )
        super().__init__(message)


class MergeError(ProcessError):
    """The fat binary merge tool (lipo) failed."""


class BundlerError(ProcessError):
    """xcodebuild -create-xcframework failed."""


class ToolTimeoutError(ProcessError, TimeoutError):
    def __init__(self, command: Sequence[str], timeout: float, stdout: str = "", stderr: str = ""):
        self.timeout = timeout
        super().__init__(
            command,
            None,
            stdout,
            stderr,
            message=f"Command timed out after {timeout}s: $ {' '.join(command)}",
        )
