# domain/ids.py
from dataclasses import dataclass
from uuid import uuid4

from domain.exceptions import ValidationError


@dataclass(frozen=True)
class RunId:
    value: str

    def __post_init__(self) -> None:
        if not self.value or not self.value.strip():
            raise ValidationError("Run id must not be empty")

    @classmethod
    def new(cls) -> "RunId":
        return cls(str(uuid4()))

    def __str__(self) -> str:
        return self.value
