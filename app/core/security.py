from __future__ import annotations

from passlib.context import CryptContext

from app.core.settings import settings


pin_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def get_pin_hash(pin: str) -> str:
    if len(pin) != settings.pin_length or not pin.isdigit():
        raise ValueError(f"PIN must be exactly {settings.pin_length} digits")
    return pin_context.hash(pin)


def verify_pin(plain_pin: str, pin_hash: str) -> bool:
    return pin_context.verify(plain_pin, pin_hash)
