"""Error types shared by the service, the store and the API layer."""
from typing import List


class InstallctlError(Exception):
    """Base class for installctl errors."""
    pass


class ValidationError(InstallctlError):
    """Raised when a request violates one or more validation rules.

    All violations are carried in ``errors`` so a client can fix them in one
    round trip.
    """

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class NotFoundError(InstallctlError):
    """Raised when a cluster is not in the store."""
    pass


class ConflictError(InstallctlError):
    """Raised when a cluster with the same name already exists."""
    pass


class BackendError(InstallctlError):
    """Raised on store or filesystem failures."""
    pass


class StoreError(BackendError):
    """Raised when the store backend cannot be read or written."""
    pass


class BuildError(InstallctlError):
    """Raised when a plan cannot be built from a request."""
    pass
