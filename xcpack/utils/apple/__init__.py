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

"""Apple platform utilities for xcpack."""

from .config import XcpackConfig
from .platform import ApplePlatform, CargoProfile, PlatformIdentity, PlatformIdentityResolver

__all__ = [
    "ApplePlatform",
    "CargoProfile",
    "PlatformIdentity",
    "PlatformIdentityResolver",
    "XcpackConfig",
]
