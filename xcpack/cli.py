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

import os
import sys
import importlib
import argparse
from typing import List, Optional

from xcpack.utils.context.namespace import CliNameSpace
from xcpack.utils.context.context import CliContext
from xcpack.utils.context.command import CliCommand
from xcpack.utils.errors import XcpackError

SCRIPT_PATH = os.path.split(os.path.realpath(__file__))[0]


def command_module_name(subcommand: str) -> str:
    return f"xcpack.commands.{subcommand.replace('-', '_')}"


def command_class_name(subcommand: str) -> str:
    return "".join(part.capitalize() for part in subcommand.split("-"))


# Root Class for Command Line Interface
class Cli(CliCommand):
    def description(self) -> str:
        return """xcpack - Swift packaging for rust libraries

Builds a cargo workspace for every Apple platform, packs the static
libraries into one XCFramework and generates the Package.swift that
exposes the Swift bindings.

USAGE:
    xcpack <command> [options]

COMMANDS:
    build               Build the libraries and the XCFramework
    generate-package    Generate Package.swift

EXAMPLES:
    xcpack build --profile release --ffi-module-name MyFFI
    xcpack generate-package --project-name my-sdk --package-name-map my-crate:MyCrate

For more information on a specific command:
    xcpack <command> --help
        """

    def get_command_list(self) -> list:
        arr = []
        for command in os.listdir(os.path.join(SCRIPT_PATH, "commands")):
            if not command.startswith("_") and command.endswith(".py"):
                arr.append(os.path.splitext(command)[0].replace("_", "-"))
        return sorted(arr)

    def parser(self, add_help: bool = True) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            prog="xcpack",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            description=self.description(),
            add_help=add_help,
        )
        parser.add_argument(
            "subcommand",
            metavar=f"{self.get_command_list()}",
            type=str,
            nargs="?",
            choices=self.get_command_list(),
        )
        return parser

    def cli(self, argv: Optional[List[str]] = None) -> CliNameSpace:
        argv = sys.argv[1:] if argv is None else list(argv)
        # xcpack --help, but not xcpack build --help
        if len(argv) == 1 and argv[0] in ["--help", "-h"]:
            self.parser().print_help()
            sys.exit(0)

        # parse only the subcommand, the rest belongs to it
        args, rest = self.parser(add_help=False).parse_known_args(
            argv[:1], namespace=CliNameSpace()
        )
        args.argv = argv[1:] + rest
        return args

    def exec(self, context: CliContext, args: CliNameSpace):
        if not args.subcommand:
            print("ERROR: No command specified\n")
            self.parser().print_help()
            sys.exit(1)

        module = importlib.import_module(command_module_name(args.subcommand))
        klass = getattr(module, command_class_name(args.subcommand))
        sub_cmd = klass()
        sub_cmd.exec(context, sub_cmd.cli(args.argv))


def main(argv: Optional[List[str]] = None):
    cmd = Cli()
    try:
        cmd.exec(CliContext(), cmd.cli(argv))
    except XcpackError as e:
        print(f"❌ {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
