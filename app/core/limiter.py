from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.requests import Request

from app.core.settings import settings


def client_or_remote_address(request: Request) -> str:
    client_id = request.headers.get("x-client-id")
    if client_id:
        return f"client:{client_id}"
    return get_remote_address(request)


limiter = Limiter(
    key_func=client_or_remote_address,
    default_limits=[f"{settings.rate_limit_per_minute}/minute"],
    storage_uri="memory://",
)

__all__ = ["limiter", "client_or_remote_address"]
