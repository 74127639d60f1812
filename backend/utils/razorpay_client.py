# backend/utils/razorpay_client.py
import hashlib
import hmac
import httpx
import logging
from urllib.parse import urljoin
from config import settings

logger = logging.getLogger(__name__)

class RazorpayClient:
    def __init__(self):
        # Initialize gateway endpoint and credentials
        self.api_url = settings.RAZORPAY_API_URL
        self.key_id = settings.RAZORPAY_KEY_ID
        self.key_secret = settings.RAZORPAY_KEY_SECRET
        self.timeout = 10.0

    async def create_order(self, amount: int, currency: str, receipt: str) -> dict:
        # Amount is in the smallest currency unit (paise for INR)
        order_url = urljoin(self.api_url, "/v1/orders")
        payload = {
            "amount": amount,
            "currency": currency,
            "receipt": receipt,
            "payment_capture": 1,
        }
        async with httpx.AsyncClient(auth=(self.key_id, self.key_secret), timeout=self.timeout) as client:
            try:
                response = await client.post(order_url, json=payload)
                response.raise_for_status()
                return response.json()
            except httpx.HTTPStatusError as e:
                logger.error(f"Razorpay create order error {e.response.status_code}: {e.response.text}")
                raise
            except httpx.RequestError as e:
                logger.error(f"Razorpay unreachable: {e}")
                raise

    def verify_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        """Checks the checkout signature: HMAC-SHA256 of 'order_id|payment_id' with the key secret."""
        message = f"{order_id}|{payment_id}".encode("utf-8")
        expected = hmac.new(self.key_secret.encode("utf-8"), message, hashlib.sha256).hexdigest()
        return hmac.compare_digest(expected, signature or "")

razorpay_client = RazorpayClient()
