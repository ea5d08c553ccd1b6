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
import platform
from typing import List, Optional

from xcpack.build_scripts.build_apple import build, default_platforms
from xcpack.utils.apple.config import XcpackConfig
from xcpack.utils.apple.platform import ApplePlatform
from xcpack.utils.cargo.project import Project
from xcpack.utils.context.command import CliCommand
from xcpack.utils.context.context import CliContext
from xcpack.utils.context.namespace import CliNameSpace


class Build(CliCommand):
    def description(self) -> str:
        return """
        Build the top-level binding package and package it for Swift.

        On macOS every Apple platform is built and packed into one
        XCFramework. Elsewhere the host is built into a Linux library
        directory. Run it from the cargo workspace root.

        Examples:
            xcpack build --profile release --ffi-module-name MyFFI
            xcpack build --profile dev --only-ios
            xcpack build --profile release --platforms macos,ios
        """

    def cli(self, argv: Optional[List[str]] = None) -> CliNameSpace:
        parser = argparse.ArgumentParser(
            prog="xcpack build",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            description=self.description(),
        )
        parser.add_argument(
            "--profile",
            type=str,
            choices=["dev", "release"],
            help="Cargo profile (default: xcframework.profile in XCPACK.toml)",
        )
        parser.add_argument(
            "--ffi-module-name",
            type=str,
            help="Name of the FFI module and of the XCFramework",
        )
        group = parser.add_mutually_exclusive_group()
        group.add_argument(
            "--only-ios",
            action="store_true",
            help="Only build for iOS and the iOS simulator",
        )
        group.add_argument(
            "--only-macos",
            action="store_true",
            help="Only build for macOS",
        )
        group.add_argument(
            "--platforms",
            type=str,
            help="Comma separated platforms: macos,ios,tvos,watchos or all",
        )
        parser.add_argument(
            "--no-verify-headers",
            action="store_true",
            help="Don't check that slices of one platform generated the same headers",
        )
        return parser.parse_args(argv, namespace=CliNameSpace())

    def select_platforms(self, args: CliNameSpace, config: XcpackConfig) -> List[ApplePlatform]:
        if args.only_ios:
            return [ApplePlatform.IOS]
        if args.only_macos:
            return [ApplePlatform.MACOS]
        if args.platforms:
            return ApplePlatform.from_names(args.platforms)
        if config.platforms is not None:
            return config.platforms
        return default_platforms(platform.system().lower())

    def exec(self, context: CliContext, args: CliNameSpace):
        config = XcpackConfig.load(context.project_dir)
        ffi_module_name = config.resolve_ffi_module_name(args.ffi_module_name)
        profile = config.resolve_profile(args.profile)
        if args.no_verify_headers:
            config.verify_headers = False
        apple_platforms = self.select_platforms(args, config)

        print(f"🔨 Building {ffi_module_name} in {context.project_dir}")
        print(config.get_config_summary())
        if apple_platforms:
            print(f"  Build platforms: {', '.join(str(p) for p in apple_platforms)}")
        else:
            print("  Build platforms: host")

        project = Project.load(ffi_module_name, context.project_dir)
        build(project, config, profile, apple_platforms)
