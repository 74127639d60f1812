# utils/device_auth.py
import hmac
from typing import Optional

from fastapi import Header

from config import settings
from utils.errors import DeviceAuthError


def check_device_token(token: Optional[str]) -> None:
    """Reject a device request unless it carries the pre-shared device key.

    With no DEVICE_API_KEY configured every device is accepted.
    """
    expected = settings.DEVICE_API_KEY
    if not expected:
        return
    if not token or not hmac.compare_digest(token.encode(), expected.encode()):
        raise DeviceAuthError("Invalid or missing device token")


# FastAPI dependency for the HTTP device endpoints
def require_device_token(x_device_token: Optional[str] = Header(None)) -> None:
    check_device_token(x_device_token)
