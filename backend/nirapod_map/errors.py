"""
Error kinds raised by the map controller and its service clients.

ValidationError is handled where it is raised (the transition is blocked and a
notification is emitted). TransportError and EmptyResultError move the affected
stream into its failed/empty state; none of them is fatal to the controller.
"""


class MapError(Exception):
    """Base class for controller errors."""


class ValidationError(MapError):
    """A user-supplied value was rejected (outside region, missing field)."""


class TransportError(MapError):
    """The network call or the service behind it failed."""


class EmptyResultError(MapError):
    """The service answered but produced nothing usable."""
