# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Package-wide logger for heos_bridge"""

import logging

logger = logging.getLogger("heos_bridge")
