from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from pydantic import AnyHttpUrl, BaseModel, ConfigDict, ValidationError

from .errors import DescriptorValidationError
from .fingerprint import fingerprint


class RequestDescriptor(BaseModel):
    """Validated description of an idempotent upstream call."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    method: Literal["GET", "POST"]
    url: AnyHttpUrl
    headers: dict[str, str] | None = None
    body: Any = None

    @classmethod
    def from_payload(cls, payload: object) -> RequestDescriptor:
        """Build a descriptor from decoded JSON.

        Raises:
            DescriptorValidationError: listing every violated constraint.
        """
        if isinstance(payload, cls):
            return payload
        try:
            return cls.model_validate(payload)
        except ValidationError as error:
            raise DescriptorValidationError(
                [
                    {
                        "loc": [str(part) for part in item["loc"]],
                        "msg": item["msg"],
                        "type": item["type"],
                    }
                    for item in error.errors()
                ]
            ) from error

    def fingerprint(self) -> str:
        return fingerprint(self)


@dataclass(frozen=True)
class ByteRange:
    """Inclusive byte interval ``[start, end]`` of an object of ``total_size``."""

    start: int
    end: int
    total_size: int

    def __post_init__(self) -> None:
        if not 0 <= self.start <= self.end < self.total_size:
            msg = (
                f"invalid byte range {self.start}-{self.end} "
                f"for size {self.total_size}"
            )
            raise ValueError(msg)

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    @property
    def content_range(self) -> str:
        return f"bytes {self.start}-{self.end}/{self.total_size}"
