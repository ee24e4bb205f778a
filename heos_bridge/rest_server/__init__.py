# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
A REST FastAPI server that controls HEOS players.
"""
from .app import proj_api, create_app, load_raw_config
from .state import BridgeState
