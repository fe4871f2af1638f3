"""Errors raised by the blob host. The store and limiter only raise ValueError on misuse."""


class EphemeraError(Exception):
    pass


class InvalidPayload(EphemeraError):
    """The encoded payload is not a well-formed, acceptable data URL."""


class NotFound(EphemeraError):
    """No live blob under this id. Expired and never-existed look the same."""


class CollisionDetected(EphemeraError):
    """A freshly generated id already maps to a live entry."""


class ResourceExhausted(EphemeraError):
    """Id generation kept colliding; the request cannot be served."""
