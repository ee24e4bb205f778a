# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Home-automation notifiers.
"""

from .fibaro import FibaroNotifier
