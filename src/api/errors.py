# error taxonomy surfaced by the remote layer

from typing import Optional


class StorefrontError(Exception):
    """Base class for every failure the remote layer reports."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class FetchError(StorefrontError):
    """
    A read failed: transport error, non-2xx status or a payload that
    did not validate. Screens show it as a page-level alert with reload.
    """


class NotFoundError(FetchError):
    """The server answered 404 to a detail read."""


class MutationError(StorefrontError):
    """A create/update/delete/add/remove/clear did not go through."""
