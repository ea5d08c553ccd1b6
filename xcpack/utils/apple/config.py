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
xcpack configuration handler.

Reads XCPACK.toml from the cargo workspace root and expands environment
variables in its values. Command line arguments override these values.
"""

import os
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

# Try to import tomli for Python < 3.11, tomllib for Python >= 3.11
try:
    import tomllib
except ModuleNotFoundError:
    import tomli as tomllib

from xcpack.utils.apple.platform import ApplePlatform, CargoProfile
from xcpack.utils.cmd.cmd_util import DEFAULT_TIMEOUT_SECOND
from xcpack.utils.errors import ConfigurationError

CONFIG_FILE_NAME = "XCPACK.toml"

DEFAULT_BINDING_GENERATOR = [
    "uniffi-bindgen-swift",
    "--swift-sources",
    "--headers",
    "{library}",
    "{out_dir}",
]


class XcpackConfig:
    """Handle xcpack build and packaging configuration."""

    DEFAULT_MIN_VERSIONS = {
        "ios": "13.0",
        "macos": "11.0",
        "tvos": "13.0",
        "watchos": "8.0",
    }

    def __init__(self, config: Optional[Dict[str, Any]] = None, project_dir: str = "."):
        """
        Initialize configuration.

        Args:
            config: Configuration dictionary from XCPACK.toml
            project_dir: Project directory path
        """
        config = config or {}
        self.raw_config = config
        self.project_dir = Path(project_dir).resolve()

        project_config = config.get("project", {})
        self.project_name = self._expand_env(project_config.get("name", ""))

        xcframework_config = config.get("xcframework", {})
        self.ffi_module_name = self._expand_env(xcframework_config.get("ffi_module_name", ""))
        self.profile = self._expand_env(xcframework_config.get("profile", ""))
        self.platforms = self._parse_platforms(xcframework_config.get("platforms"))
        self.verify_headers = bool(xcframework_config.get("verify_headers", True))
        self.tool_timeout = xcframework_config.get("tool_timeout", DEFAULT_TIMEOUT_SECOND)
        self.binding_generator = [
            self._expand_env(arg)
            for arg in xcframework_config.get("binding_generator", DEFAULT_BINDING_GENERATOR)
        ]

        min_versions = xcframework_config.get("min_versions", {})
        self.min_versions = {}
        for platform in ApplePlatform.all():
            self.min_versions[platform] = self._expand_env(
                min_versions.get(str(platform), self.DEFAULT_MIN_VERSIONS[str(platform)])
            )

        spm_config = config.get("spm", {})
        self.package_name_map = {
            k: self._expand_env(v) for k, v in spm_config.get("package_name_map", {}).items()
        }
        self.format_manifest = bool(spm_config.get("format_manifest", True))
        # remote XCFramework zip, the local bundle is used when unset
        self.release_url = self._expand_env(spm_config.get("release_url", ""))
        self.release_checksum = self._expand_env(spm_config.get("release_checksum", ""))

    @classmethod
    def load(cls, project_dir: str = ".") -> "XcpackConfig":
        """Load XCPACK.toml from project_dir, or the defaults when there is none."""
        config_file = Path(project_dir) / CONFIG_FILE_NAME
        if not config_file.is_file():
            return cls({}, project_dir)
        try:
            # Must open in rb mode for tomllib
            with open(config_file, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigurationError(f"Invalid {config_file}: {e}") from e
        return cls(data, project_dir)

    def _expand_env(self, value: str) -> str:
        """
        Expand environment variables in configuration values.

        Supports ${VAR_NAME} and $VAR_NAME syntax.
        """
        if not isinstance(value, str):
            return value

        # Pattern for ${VAR_NAME}
        pattern1 = re.compile(r"\$\{([^}]+)\}")
        value = pattern1.sub(lambda m: os.environ.get(m.group(1), m.group(0)), value)

        # Pattern for $VAR_NAME
        pattern2 = re.compile(r"\$([A-Za-z_][A-Za-z0-9_]*)")
        value = pattern2.sub(lambda m: os.environ.get(m.group(1), m.group(0)), value)

        return value

    def _parse_platforms(self, value: Union[None, str, List[str]]) -> Optional[List[ApplePlatform]]:
        if value is None:
            return None
        if isinstance(value, str):
            value = self._expand_env(value)
        return ApplePlatform.from_names(value)

    def resolve_profile(self, override: Optional[str] = None) -> CargoProfile:
        value = override or self.profile
        if not value:
            raise ConfigurationError("Missing profile, pass --profile or set xcframework.profile")
        return CargoProfile.parse(value)

    def resolve_ffi_module_name(self, override: Optional[str] = None) -> str:
        value = override or self.ffi_module_name
        if not value:
            raise ConfigurationError(
                "Missing FFI module name, pass --ffi-module-name or set xcframework.ffi_module_name"
            )
        return value

    def get_config_summary(self) -> str:
        """Get a summary of the configuration for display."""
        lines = [
            f"  Project: {self.project_name or 'N/A'}",
            f"  FFI Module: {self.ffi_module_name or 'N/A'}",
            f"  Profile: {self.profile or 'N/A'}",
        ]
        if self.platforms is not None:
            lines.append(f"  Platforms: {', '.join(str(p) for p in self.platforms)}")
        for platform, version in self.min_versions.items():
            lines.append(f"    {platform}: {version}")
        if self.release_url:
            lines.append(f"  Release XCFramework: {self.release_url}")
        if self.package_name_map:
            lines.append("  SPM targets:")
            for package, target in self.package_name_map.items():
                lines.append(f"    {package} -> {target}")
        return "\n".join(lines)
