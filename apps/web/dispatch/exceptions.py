"""Dispatch pipeline exceptions."""


class DispatchError(Exception):
    """Base exception for order dispatch errors."""

    def __init__(self, message: str, order_id: int | str | None = None) -> None:
        self.message = message
        self.order_id = order_id
        super().__init__(message)


class OrderValidationError(DispatchError):
    """Inbound order payload is malformed or has no order identity."""


class ConfigurationError(DispatchError):
    """Required location, POS or delivery configuration is missing."""


class UpstreamDegradedError(DispatchError):
    """A non-critical upstream lookup failed; callers substitute a fallback."""


class FatalDispatchError(DispatchError):
    """Dispatch aborted before the POS payment completed."""

    def __init__(
        self,
        message: str,
        order_id: int | str | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message, order_id)
        self.details = details


class HealingItemError(DispatchError):
    """One record could not be healed, date-fixed or cleaned up."""


class AuditRecordNotFound(DispatchError):
    """The audit store has no record under the requested key."""


# =============================================================================
# Upstream (external service) errors
# =============================================================================


class UpstreamError(Exception):
    """Base exception for calls to external services."""

    service = "upstream"

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: str | None = None,
    ) -> None:
        self.message = message
        self.status_code = status_code
        self.response_body = response_body
        super().__init__(message)


class CommerceAPIError(UpstreamError):
    """Shopify Admin API request failed."""

    service = "shopify"


class POSAPIError(UpstreamError):
    """Square API request failed."""

    service = "square"


class POSAuthError(POSAPIError):
    """Square rejected the access token."""


class POSRateLimitError(POSAPIError):
    """Rate limit exceeded with Square."""

    def __init__(
        self,
        message: str,
        status_code: int | None = 429,
        response_body: str | None = None,
        retry_after: int | None = None,
    ) -> None:
        super().__init__(message, status_code, response_body)
        self.retry_after = retry_after


class DeliveryAPIError(UpstreamError):
    """Shipday API request failed."""

    service = "shipday"
