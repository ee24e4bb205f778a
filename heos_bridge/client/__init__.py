# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
HEOS client.

Provides the TCP/IP transport for the HEOS CLI protocol and the
HeosConnector that builds player operations on top of it.
"""

from .client_config import HeosClientConfig
from .client_transport import HeosClientTransport
from .client_transport_transaction import HeosClientTransportTransaction
from .tcp_client_transport import TcpHeosClientTransport
from .client_impl import HeosConnector, PlayerId
from .simple import heos_connect
