# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Package heos_bridge provides a command-line tool, a REST server and an API for
controlling Denon HEOS players via the HEOS CLI TCP/IP protocol.
"""

from .version import __version__

from .pkg_logging import logger

from .internal_types import Jsonable, JsonableDict, CatalogEntry

from .exceptions import (
    HeosBridgeError,
    HeosInvalidCommandError,
    HeosNotConnectedError,
    HeosProtocolError,
    HeosTimeoutError,
  )

from .constants import DEFAULT_PORT, DEFAULT_TIMEOUT, DEFAULT_POLL_INTERVAL

from .client import (
    HeosClientConfig,
    HeosClientTransport,
    TcpHeosClientTransport,
    HeosConnector,
    heos_connect,
  )

from .protocol import (
    HeosCommand,
    ResponseKind,
    classify_response,
    validate_result,
    entries_sorted_by_values,
  )

from .util import (
    full_class_name,
    full_name_of_class,
    error_description,
)
