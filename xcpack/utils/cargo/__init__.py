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

"""cargo workspace utilities for xcpack."""

from .metadata import CargoDependency, CargoMetadata, CargoPackage, load_cargo_metadata
from .graph import PackageNode, discover, iterate, root
from .project import Project

__all__ = [
    "CargoDependency",
    "CargoMetadata",
    "CargoPackage",
    "PackageNode",
    "Project",
    "discover",
    "iterate",
    "load_cargo_metadata",
    "root",
]
