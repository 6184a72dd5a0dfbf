import os

from dotenv import load_dotenv
from pydantic import BaseModel


load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if not value:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]


APP_ENV = os.getenv("APP_ENV", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

CORS_ALLOW_ORIGINS = _get_list(os.getenv("CORS_ALLOW_ORIGINS"), ["http://localhost:5173"])

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", "60"))

# PayAnyWay merchant account
PAYMENT_MERCHANT_ID = os.getenv("PAYMENT_MERCHANT_ID", "74730556")
PAYMENT_INTEGRITY_CODE = os.getenv("PAYMENT_INTEGRITY_CODE", "change-me")
PAYMENT_TEST_MODE = os.getenv("PAYMENT_TEST_MODE", "0")
PAYMENT_CURRENCY_CODE = os.getenv("PAYMENT_CURRENCY_CODE", "RUB")
PAYMENT_AMOUNT = os.getenv("PAYMENT_AMOUNT", "10.00")
PAYMENT_BASE_URL = os.getenv("PAYMENT_BASE_URL", "http://localhost:5173")
PAYMENT_GATEWAY_URL = os.getenv("PAYMENT_GATEWAY_URL", "https://payanyway.ru/assistant.htm")
# Off by default: a mismatched MNT_SIGNATURE is only logged.
PAYMENT_STRICT_SIGNATURE = _get_bool(os.getenv("PAYMENT_STRICT_SIGNATURE"), default=False)


class GatewaySettings(BaseModel):
    merchant_id: str
    integrity_code: str
    test_mode: str = "0"
    currency_code: str = "RUB"
    amount: str = "10.00"
    base_url: str
    gateway_url: str = "https://payanyway.ru/assistant.htm"
    strict_signature_verification: bool = False


def get_gateway_settings() -> GatewaySettings:
    return GatewaySettings(
        merchant_id=PAYMENT_MERCHANT_ID,
        integrity_code=PAYMENT_INTEGRITY_CODE,
        test_mode=PAYMENT_TEST_MODE,
        currency_code=PAYMENT_CURRENCY_CODE,
        amount=PAYMENT_AMOUNT,
        base_url=PAYMENT_BASE_URL.rstrip("/"),
        gateway_url=PAYMENT_GATEWAY_URL,
        strict_signature_verification=PAYMENT_STRICT_SIGNATURE,
    )


def validate_runtime_config() -> None:
    if APP_ENV.lower() != "production":
        return
    if JWT_SECRET_KEY == "change-me":
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")
    if PAYMENT_INTEGRITY_CODE == "change-me":
        raise RuntimeError("PAYMENT_INTEGRITY_CODE must be set in production.")
