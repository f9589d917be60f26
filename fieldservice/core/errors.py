# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Error taxonomy shared by services and controllers.

Unknown ids raise the builtin KeyError, the same way the repositories and
services report a missing record.
"""

from typing import Optional


class GatewayError(Exception):
    """A remote call failed. Base class for transport and envelope errors."""

    def __init__(self, message: str, action: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.action = action


class GatewayTransportError(GatewayError):
    """Network failure or a non-2xx HTTP status."""

    def __init__(
        self,
        message: str,
        action: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message, action)
        self.status_code = status_code


class GatewayApplicationError(GatewayError):
    """The endpoint answered with success=false."""


class MutationFailed(GatewayError):
    """A mutation was rolled back and the user should be told."""


class ValidationFailed(ValueError):
    """Client-side input validation rejected the request before any change."""


class RuleRefused(ValueError):
    """A business rule refused the request before any change."""


class CapacityExceeded(RuleRefused):
    """An assignment target is already full."""
