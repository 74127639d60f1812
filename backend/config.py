# backend/config.py
from pydantic_settings import BaseSettings
from typing import ClassVar, Optional
from pathlib import Path

# Resolve absolute path to the .env file for reliable loading
env_path = Path(__file__).parent.parent / ".env"

class Settings(BaseSettings):
    SECRET_KEY: str = "smartcart_secret_key"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 24 * 60

    # Flat JSON collections (products, users, carts, orders)
    DATA_DIR: str = "data"
    STORE_LOCK_TIMEOUT_SECONDS: float = 5.0

    # Product images, served under /images
    UPLOAD_DIR: str = "public/images"
    MAX_UPLOAD_BYTES: int = 5 * 1024 * 1024

    # RFID devices
    TEST_RFID_TAG: str = "TEST_TAG"
    DEFAULT_SCAN_USER_ID: Optional[str] = "2"
    DEVICE_API_KEY: Optional[str] = None

    # Razorpay gateway
    RAZORPAY_API_URL: str = "https://api.razorpay.com"
    RAZORPAY_KEY_ID: str = "rzp_test_key"
    RAZORPAY_KEY_SECRET: str = "rzp_test_secret"
    PAYMENT_CURRENCY: str = "INR"
    PAYMENT_VERIFY_SIGNATURE: bool = False

    LOG_LEVEL: str = "INFO"
    DEBUG: bool = False
    CORS_ORIGINS: str = "*"

    class Config:
        env_file: ClassVar[str] = str(env_path)

settings = Settings()
