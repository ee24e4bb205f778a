# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
A REST FastAPI server that controls HEOS players.
"""
import os
import sys
import uvicorn
import logging
from dotenv import load_dotenv

DEFAULT_SERVER_PORT = 8000

def run() -> int:
    load_dotenv()

    logging.basicConfig(level=logging.INFO)

    from heos_bridge.rest_server.app import proj_api
    port = int(os.environ.get("HEOS_BRIDGE_SERVER_PORT", DEFAULT_SERVER_PORT))
    uvicorn.run(proj_api, host="0.0.0.0", port=port, log_config=None)
    return 0

if __name__ == "__main__":
    rc = run()
    sys.exit(rc)
