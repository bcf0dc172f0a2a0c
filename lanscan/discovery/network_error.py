"""Defines NetworkError, raised when mDNS networking cannot be set up."""


class NetworkError(RuntimeError):
    """Raised when the multicast socket cannot be bound or the group joined.

    This is the only failure a scan start can report. It is never raised once
    a scan is running.
    """
