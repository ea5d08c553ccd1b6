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

import argparse
from typing import Dict, List, Optional

from xcpack.utils.apple.config import XcpackConfig
from xcpack.utils.apple.spm import generate_swift_package
from xcpack.utils.cargo.project import Project
from xcpack.utils.context.command import CliCommand
from xcpack.utils.context.context import CliContext
from xcpack.utils.context.namespace import CliNameSpace
from xcpack.utils.errors import ConfigurationError


def parse_package_name_map(value: Optional[str]) -> Dict[str, str]:
    """Parse 'crate-a:TargetA,crate-b:TargetB' into a dict."""
    result = {}
    if not value:
        return result
    for item in value.split(","):
        item = item.strip()
        if not item:
            continue
        package, sep, target = item.partition(":")
        if not sep or not package.strip() or not target.strip():
            raise ConfigurationError(
                f"Invalid package name mapping: {item}, expected <package>:<target>"
            )
        result[package.strip()] = target.strip()
    return result


class GeneratePackage(CliCommand):
    def description(self) -> str:
        return """
        Generate Package.swift at the cargo workspace root.

        Every binding package needs a public SwiftPM target name, given with
        --package-name-map or in the [spm] package_name_map table of
        XCPACK.toml. Command line entries win.

        By default the FFI target points at the local XCFramework. With
        --release-url and --release-checksum it points at a released zip.

        Examples:
            xcpack generate-package --ffi-module-name MyFFI --project-name my-sdk \\
                --package-name-map my-crate:MyCrate,my-core:MyCore
        """

    def cli(self, argv: Optional[List[str]] = None) -> CliNameSpace:
        parser = argparse.ArgumentParser(
            prog="xcpack generate-package",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            description=self.description(),
        )
        parser.add_argument(
            "--ffi-module-name",
            type=str,
            help="Name of the FFI module and of the XCFramework",
        )
        parser.add_argument(
            "--project-name",
            type=str,
            help="Project name written into Package.swift",
        )
        parser.add_argument(
            "--package-name-map",
            type=str,
            help="Comma separated <cargo package>:<SwiftPM target> pairs",
        )
        parser.add_argument(
            "--release-url",
            type=str,
            help="URL of the released XCFramework zip, used instead of the local bundle",
        )
        parser.add_argument(
            "--release-checksum",
            type=str,
            help="SwiftPM checksum of the zip at --release-url",
        )
        return parser.parse_args(argv, namespace=CliNameSpace())

    def exec(self, context: CliContext, args: CliNameSpace):
        config = XcpackConfig.load(context.project_dir)
        ffi_module_name = config.resolve_ffi_module_name(args.ffi_module_name)
        project_name = args.project_name or config.project_name
        if not project_name:
            raise ConfigurationError("Missing project name, pass --project-name or set project.name")

        package_name_map = dict(config.package_name_map)
        package_name_map.update(parse_package_name_map(args.package_name_map))
        if args.release_url:
            config.release_url = args.release_url
        if args.release_checksum:
            config.release_checksum = args.release_checksum

        project = Project.load(ffi_module_name, context.project_dir)
        generate_swift_package(project, project_name, package_name_map, config)
