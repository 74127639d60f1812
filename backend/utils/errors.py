# utils/errors.py
"""Domain failures shared by the HTTP routes and the socket channel.

Each error carries the HTTP status it maps to; ``main.py`` registers a single
handler that renders them as ``{"detail": message}``. The socket channel sends
the same message back to the originating client as an ``error`` event.
"""


class SmartCartError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(SmartCartError):
    status_code = 404


class ProductNotFoundError(NotFoundError):
    def __init__(self, message: str = "Product not found"):
        super().__init__(message)


class ValidationFailed(SmartCartError):
    status_code = 400


class ConflictError(SmartCartError):
    status_code = 409


class OutOfStockError(SmartCartError):
    status_code = 400

    def __init__(self, message: str = "Product out of stock"):
        super().__init__(message)


class DeviceAuthError(SmartCartError):
    status_code = 401


class StorageError(SmartCartError):
    status_code = 500


class StoreTimeoutError(StorageError):
    status_code = 503


class UpstreamError(SmartCartError):
    status_code = 502


class UploadTooLargeError(SmartCartError):
    status_code = 413
