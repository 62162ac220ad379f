"""Error taxonomy shared by the request path and the payment worker.

Store and transport exceptions are translated into these classes at the
component that issues the call. HTTP-facing errors carry the status code and
payload they are rendered with.
"""


class OrderPayError(Exception):
    """Base class for all service errors."""

    status_code: int = 500

    def __init__(self, message: str, reason: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.reason = reason

    def to_payload(self) -> dict[str, str]:
        payload = {"error": self.message}
        if self.reason is not None:
            payload["reason"] = self.reason
        return payload


class ClientError(OrderPayError):
    """Missing or invalid client input; never retried by the server."""

    status_code = 400


class OrderNotFoundError(ClientError):
    status_code = 404

    def __init__(self, order_number: str) -> None:
        super().__init__(f"Order {order_number} not found")
        self.order_number = order_number


class DuplicateOrderError(ClientError):
    """An order with this order number already exists under another key."""

    status_code = 409

    def __init__(self, order_number: str) -> None:
        super().__init__(f"Order {order_number} already exists")
        self.order_number = order_number


class WebhookPayloadError(ClientError):
    """Signature was valid but the body could not be interpreted."""

    def __init__(self, reason: str) -> None:
        super().__init__("Invalid webhook payload", reason=reason)


class AuthenticationError(OrderPayError):
    """Webhook signature verification failed."""

    status_code = 401

    def __init__(self, reason: str) -> None:
        super().__init__("Invalid signature", reason=reason)


class TransientStoreError(OrderPayError):
    """The backing store failed; callers decide whether to degrade."""

    status_code = 503

    def __init__(self, reason: str) -> None:
        super().__init__("Store unavailable", reason=reason)


class ConflictError(OrderPayError):
    """A unique key was already taken by a concurrent writer."""

    status_code = 409


class DeliveryError(OrderPayError):
    """Outbound webhook delivery failed (network error or non-2xx)."""

    status_code = 502
