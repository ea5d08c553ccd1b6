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
import shutil
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator, Optional


# This context data class to save the context of the command
class CliContext:
    def __init__(self, project_dir: Optional[str] = None):
        self.project_dir = Path(project_dir or os.getcwd()).resolve()


@dataclass
class PackagingContext:
    """
    State owned by one packaging run.

    temp_dir is unique to the run, so two runs against the same cargo
    target directory do not share scratch space.
    """

    cargo_target_dir: Path
    temp_dir: Path
    toolchain: Any
    verify_headers: bool = True


@contextmanager
def packaging_context(
    cargo_target_dir, name: str, toolchain, verify_headers: bool = True
) -> Iterator[PackagingContext]:
    """
    Allocate a run-unique scratch directory under <target>/tmp/.

    The scratch directory is removed when the block exits, whether it
    succeeded or raised.
    """
    cargo_target_dir = Path(cargo_target_dir)
    tmp_root = cargo_target_dir / "tmp"
    tmp_root.mkdir(parents=True, exist_ok=True)
    temp_dir = Path(tempfile.mkdtemp(prefix=f"{name}-xcframework-", dir=tmp_root))
    try:
        yield PackagingContext(
            cargo_target_dir=cargo_target_dir,
            temp_dir=temp_dir,
            toolchain=toolchain,
            verify_headers=verify_headers,
        )
    finally:
        shutil.rmtree(temp_dir, ignore_errors=True)
