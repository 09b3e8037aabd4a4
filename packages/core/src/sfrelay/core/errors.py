"""Error types raised by the relay pipeline."""

from __future__ import annotations


class SalesforceRelayError(Exception):
    """Base class for every error the pipeline raises."""


class ConfigError(SalesforceRelayError):
    """Invalid or contradictory routing / connection configuration.

    Fatal at setup: the pipeline must not start.
    """


class AuthError(SalesforceRelayError):
    """The OAuth2 credential exchange was rejected or could not complete."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class DeliveryError(SalesforceRelayError):
    """A sink answered a delivery request with a non-2xx status."""

    BODY_SNIPPET_LENGTH = 200

    def __init__(
        self,
        status: int | None,
        body: str = "",
        event: str | None = None,
    ) -> None:
        self.status = status
        self.body = body[: self.BODY_SNIPPET_LENGTH]
        self.event = event
        super().__init__(
            f"Not a 200 response from event hook {status}. Response: {self.body}"
        )


class NotReadyError(SalesforceRelayError):
    """An event arrived before setup completed."""


class RetryableError(SalesforceRelayError):
    """Setup failed for a reason that may be transient; the host may retry."""
