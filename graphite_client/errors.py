from __future__ import annotations


class GraphiteError(Exception):
    """Base class for everything the client raises on its own."""


class ConnectError(GraphiteError):
    """Address resolution or socket establishment failed during connect()."""


class SendError(GraphiteError):
    """A write or flush failed; the rest of the batch was abandoned."""


class NotConnectedError(GraphiteError):
    """The operation needs a live connection handle and there is none."""
