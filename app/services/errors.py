class CheckoutError(Exception):
    """Failure returned to the caller as {"success": false, "error": message}."""

    status_code = 400
    message = "Something went wrong. Please try again."
    retryable = False

    def __init__(self, message: str | None = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class NotAuthenticated(CheckoutError):
    status_code = 401
    message = "Please sign in to continue"


class NotFound(CheckoutError):
    status_code = 404
    message = "Batch not found"


class AlreadyOwned(CheckoutError):
    status_code = 409
    message = "You already have access to this batch"


class ProviderError(CheckoutError):
    status_code = 502
    message = "Something went wrong. Please try again."
    retryable = True


class InvalidSignature(CheckoutError):
    status_code = 400
    message = "Invalid payment signature"


class OrderMismatch(CheckoutError):
    status_code = 404
    message = "Order not found"


class InvalidRequest(CheckoutError):
    status_code = 400
    message = "Invalid batch id"


class CheckoutFailed(CheckoutError):
    status_code = 500
    message = "Something went wrong. Please try again."
