# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
A RAW console tool for HEOS controllers"""

from ..version import __version__
