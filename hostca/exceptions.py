"""
Error taxonomy for the certificate authority.

Every error carries the HTTP status it maps to and the message a caller is
allowed to see. Internal failures keep their detail (and the chained cause)
for the server log only; the response body is always the class-level
``public_message``.
"""

from typing import Optional


class HostCAError(Exception):
    status_code = 500
    public_message = "internal error"

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail or self.public_message
        super().__init__(self.detail)

    @property
    def is_internal(self) -> bool:
        return self.status_code >= 500


class AuthorizationError(HostCAError):
    status_code = 401
    public_message = "no client certificate provided"


class ForbiddenError(HostCAError):
    status_code = 403
    public_message = "hostname does not match certificate"


class ClientInputError(HostCAError):
    """Malformed caller input. The detail is authored by us and is shown to the caller."""
    status_code = 400
    public_message = "invalid request"

    def __init__(self, detail: Optional[str] = None):
        super().__init__(detail)
        self.public_message = self.detail


class NotFoundError(HostCAError):
    status_code = 404
    public_message = "not found"


class StorageError(HostCAError):
    pass


class SigningError(HostCAError):
    pass
