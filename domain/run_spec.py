# domain/run_spec.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from domain.exceptions import ValidationError

MIN_VIRTUAL_USERS = 1
MAX_VIRTUAL_USERS = 1000
MIN_DURATION_SEC = 1
MAX_DURATION_SEC = 3600


class HttpMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"

    @classmethod
    def parse(cls, raw: str) -> "HttpMethod":
        try:
            return cls(str(raw).strip().upper())
        except ValueError as exc:
            allowed = ", ".join(m.value for m in cls)
            raise ValidationError(f"Unsupported HTTP method: {raw} (allowed: {allowed})") from exc

    @property
    def carries_body(self) -> bool:
        return self in (HttpMethod.POST, HttpMethod.PUT)


@dataclass(frozen=True)
class RunSpec:
    """
    Parameters of one load-test run.

    body is only sent for POST/PUT and only when it is not blank,
    see effective_body().
    """

    target_url: str
    virtual_users: int
    duration: int
    method: HttpMethod = HttpMethod.GET
    body: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.target_url or not self.target_url.strip():
            raise ValidationError("target_url must not be empty")
        if not isinstance(self.method, HttpMethod):
            object.__setattr__(self, "method", HttpMethod.parse(self.method))
        _check_range("virtual_users", self.virtual_users, MIN_VIRTUAL_USERS, MAX_VIRTUAL_USERS)
        _check_range("duration", self.duration, MIN_DURATION_SEC, MAX_DURATION_SEC)

    def effective_body(self) -> Optional[str]:
        if not self.method.carries_body:
            return None
        if self.body is None or not self.body.strip():
            return None
        return self.body


def _check_range(name: str, value: int, low: int, high: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{name} must be an integer")
    if value < low or value > high:
        raise ValidationError(f"{name} must be between {low} and {high}: {value}")
