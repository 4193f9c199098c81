"""Rate limiter singleton, keyed by the acting employee when one is given."""
from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address


def employee_or_remote_address(request: Request) -> str:
    return request.headers.get("X-Employee-Id") or get_remote_address(request)


limiter = Limiter(key_func=employee_or_remote_address)
