"""Exceptions raised by logbridge."""


class BridgeError(Exception):
    """Base class for logbridge errors."""


class MarshalError(BridgeError, TypeError):
    """A value was declared as a marshaler but cannot act as one."""
