#!/usr/bin/env python3

# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Logger for the HEOS bridge REST server.
"""

from __future__ import annotations

import logging

logger = logging.getLogger('heos_bridge.rest_server')
