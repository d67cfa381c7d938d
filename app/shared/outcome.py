"""Result wrapper for operations with best-effort secondary steps."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(slots=True)
class Outcome(Generic[T]):
    """Primary result plus warnings from secondary steps that were allowed to fail."""

    result: T
    warnings: list[str] = field(default_factory=list)

    @property
    def degraded(self) -> bool:
        return bool(self.warnings)

    def warn(self, message: str) -> None:
        self.warnings.append(message)
