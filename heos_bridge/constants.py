# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Constants used by heos_bridge"""

DEFAULT_HOST = "127.0.0.1"
"""The HEOS controller host used when none is configured."""

DEFAULT_PORT = 1255
"""The listen port number used by HEOS controllers for the CLI control protocol."""

DEFAULT_TIMEOUT = 5.0
"""The default timeout for a single command exchange, in seconds."""

DEFAULT_POLL_INTERVAL = 0.1
"""The quiet period used when discarding stale response lines, in seconds."""

CONNECT_TIMEOUT = 10.0
"""The timeout for opening the TCP/IP connection to the controller, in seconds."""

STREAM_LIMIT = 1024 * 1024
"""The maximum length of a single response line, in bytes. Browse payloads can be large."""

DEFAULT_VOLUME = 10
"""The volume used by alarm/trigger requests that do not specify one."""

HEARTBEAT_INTERVAL = 60.0 * 60.0
"""The interval between keep-alive heartbeats sent by the REST server, in seconds."""

DEFAULT_FIBARO_SLIDER_ID = "3"
"""The element number of the volume slider in a Fibaro virtual device."""

DEFAULT_FIBARO_LABEL_ID = "label"
"""The id of the now-playing label in a Fibaro virtual device."""

FIBARO_TIMEOUT = 5.0
"""The timeout for Fibaro HTTP requests, in seconds."""
