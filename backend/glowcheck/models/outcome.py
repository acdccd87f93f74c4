"""Tagged success/failure value returned by fallible pipeline stages."""

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Outcome(Generic[T]):
    stage: str
    value: Optional[T] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, stage: str, value: T) -> "Outcome[T]":
        return cls(stage=stage, value=value)

    @classmethod
    def failure(cls, stage: str, error: BaseException) -> "Outcome[T]":
        return cls(stage=stage, error=error)

    def describe(self) -> str:
        if self.ok:
            return f"{self.stage}: ok"
        return f"{self.stage}: {self.error.__class__.__name__}: {self.error}"
