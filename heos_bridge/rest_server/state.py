# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Server-side state of the HEOS bridge REST server.
"""

from __future__ import annotations

import datetime

from ..internal_types import *

class BridgeState:
    """Mutable state owned by the REST server, shared by the request handlers
    and the heartbeat task."""

    last_contact: Optional[datetime.datetime] = None
    """The last time the HEOS controller answered a heartbeat or a control
    request succeeded, or None if it never has."""

    def mark_contact(self) -> None:
        self.last_contact = datetime.datetime.now()

    def last_contact_str(self) -> Optional[str]:
        if self.last_contact is None:
            return None
        return self.last_contact.isoformat(timespec='seconds')
