"""Error taxonomy raised by the registry.

Every error aborts the whole operation: nothing is written and no event is
emitted. The class name doubles as the error code returned by the API.
"""


class RegistryError(Exception):
    """Base class for rejected registry operations."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason

    @property
    def code(self) -> str:
        return type(self).__name__


class Unauthorized(RegistryError):
    """Caller lacks the required role or relationship."""


class AlreadyExists(RegistryError):
    """Provider or patient is already present."""


class NotFound(RegistryError):
    """Referenced patient or active provider is absent."""


class InvalidArgument(RegistryError):
    """Referenced identity fails a precondition."""


class OutOfRange(RegistryError):
    """Record index is beyond the patient's ledger."""
