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
Apple platform model.

Maps rust target triples to the platform they run on, and decides which
triples xcodebuild treats as the same platform inside an XCFramework.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Union

from xcpack.utils.errors import ConfigurationError, ResolutionError, UnsupportedPlatformError

SIMULATOR_LLVM_SUFFIX = "-simulator"


class ApplePlatform(Enum):
    MACOS = "macos"
    IOS = "ios"
    TVOS = "tvos"
    WATCHOS = "watchos"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def all(cls) -> List["ApplePlatform"]:
        return [cls.MACOS, cls.IOS, cls.TVOS, cls.WATCHOS]

    @classmethod
    def from_os_segment(cls, segment: str) -> "ApplePlatform":
        """Map the OS part of a triple (aarch64-apple-<os>) to a platform."""
        platform = _OS_SEGMENTS.get(segment)
        if platform is None:
            raise UnsupportedPlatformError(segment, f"Unknown Apple platform: {segment}")
        return platform

    @classmethod
    def from_names(cls, names: Union[str, Iterable[str]]) -> List["ApplePlatform"]:
        """
        Parse a user supplied platform list.

        Accepts "all", a comma separated string or a list of names.
        """
        if isinstance(names, str):
            if names.strip().lower() == "all":
                return cls.all()
            names = [n for n in names.split(",")]
        platforms = []
        for name in names:
            name = name.strip().lower()
            if not name:
                continue
            try:
                platform = cls(name)
            except ValueError:
                raise ConfigurationError(
                    f"Unsupported platform: {name}, expected one of {[str(p) for p in cls.all()]}"
                ) from None
            if platform not in platforms:
                platforms.append(platform)
        return platforms

    def target_triples(self) -> List[str]:
        return list(_TARGET_TRIPLES[self])

    def requires_nightly_toolchain(self) -> bool:
        # no prebuilt std for these targets
        return self in (ApplePlatform.TVOS, ApplePlatform.WATCHOS)

    def deployment_target_env(self, min_version: str) -> Dict[str, str]:
        return {_DEPLOYMENT_TARGET_ENV[self]: min_version}


_OS_SEGMENTS = {
    "darwin": ApplePlatform.MACOS,
    "macos": ApplePlatform.MACOS,
    "ios": ApplePlatform.IOS,
    "tvos": ApplePlatform.TVOS,
    "watchos": ApplePlatform.WATCHOS,
}

_TARGET_TRIPLES = {
    ApplePlatform.IOS: [
        "aarch64-apple-ios",
        "x86_64-apple-ios",
        "aarch64-apple-ios-sim",
    ],
    ApplePlatform.MACOS: ["x86_64-apple-darwin", "aarch64-apple-darwin"],
    ApplePlatform.WATCHOS: [
        "arm64_32-apple-watchos",
        "x86_64-apple-watchos-sim",
        "aarch64-apple-watchos-sim",
    ],
    ApplePlatform.TVOS: ["aarch64-apple-tvos", "aarch64-apple-tvos-sim"],
}

_DEPLOYMENT_TARGET_ENV = {
    ApplePlatform.MACOS: "MACOSX_DEPLOYMENT_TARGET",
    ApplePlatform.IOS: "IPHONEOS_DEPLOYMENT_TARGET",
    ApplePlatform.TVOS: "TVOS_DEPLOYMENT_TARGET",
    ApplePlatform.WATCHOS: "WATCHOS_DEPLOYMENT_TARGET",
}


class CargoProfile(Enum):
    DEV = "dev"
    RELEASE = "release"

    def __str__(self) -> str:
        return self.value

    @property
    def dir_name(self) -> str:
        """Name of the profile's output directory under target/<triple>/."""
        return "debug" if self is CargoProfile.DEV else "release"

    @classmethod
    def parse(cls, value: Union[str, "CargoProfile"]) -> "CargoProfile":
        if isinstance(value, CargoProfile):
            return value
        try:
            return cls(value)
        except ValueError:
            raise ConfigurationError(f"Invalid profile: {value}") from None


@dataclass(frozen=True)
class PlatformIdentity:
    """Triples with equal identities go into one -library slot of the XCFramework."""

    os: ApplePlatform
    is_simulator: bool

    def __str__(self) -> str:
        return f"{self.os}-sim" if self.is_simulator else str(self.os)


def split_triple(triple: str) -> List[str]:
    """
    Split <arch>-<vendor>-<os>[-variant] and check it is an Apple triple.

    Raises:
        ResolutionError: the triple is malformed or not an Apple one
    """
    parts = triple.split("-")
    if len(parts) < 3 or not all(parts[:3]):
        raise ResolutionError(triple, f"Malformed target triple: {triple}")
    if parts[1] != "apple":
        raise ResolutionError(triple, f"{triple} is not an Apple platform")
    return parts


class PlatformIdentityResolver:
    """
    Resolve target triples to PlatformIdentity values.

    target_spec takes a triple and returns rustc's target spec as a dict. The
    "llvm-target" entry ends with "-simulator" for simulator triples, which
    is more reliable than parsing the optional "-sim" suffix ourselves.
    """

    def __init__(self, target_spec: Callable[[str], dict]):
        self.target_spec = target_spec
        self._cache: Dict[str, PlatformIdentity] = {}

    def resolve(self, triple: str) -> PlatformIdentity:
        if triple in self._cache:
            return self._cache[triple]

        parts = split_triple(triple)
        try:
            os_kind = ApplePlatform.from_os_segment(parts[2])
        except UnsupportedPlatformError as e:
            raise UnsupportedPlatformError(triple, f"{e} (target {triple})") from None

        spec = self.target_spec(triple)
        llvm_target: Optional[str] = spec.get("llvm-target") if isinstance(spec, dict) else None
        if not isinstance(llvm_target, str):
            raise ResolutionError(triple, f"No llvm-target in target spec of {triple}")

        identity = PlatformIdentity(
            os=os_kind, is_simulator=llvm_target.endswith(SIMULATOR_LLVM_SUFFIX)
        )
        self._cache[triple] = identity
        return identity
