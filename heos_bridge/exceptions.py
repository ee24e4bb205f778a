# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Exceptions defined by this package"""

class HeosBridgeError(Exception):
  """Base class for all error exceptions defined by this package."""
  pass

class HeosInvalidCommandError(HeosBridgeError):
  """A command was built with an empty name or missing arguments."""
  pass

class HeosNotConnectedError(HeosBridgeError):
  """No stream to the HEOS controller is open."""
  pass

class HeosProtocolError(HeosBridgeError):
  """The HEOS controller sent a line that does not answer the pending command."""
  pass

class HeosTimeoutError(HeosBridgeError):
  """No final response arrived before the command deadline."""
  pass
