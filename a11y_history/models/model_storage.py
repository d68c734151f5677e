"""Result and quota models returned by the history store."""

from dataclasses import dataclass
from typing import Generic, TypeVar

from pydantic import BaseModel, Field, computed_field

from a11y_history.consts import PRUNE_RATIO, STORAGE_LIMIT_BYTES, WARNING_RATIO

T = TypeVar("T")


@dataclass
class StorageResult(Generic[T]):
    """Uniform outcome of a store operation.

    Store methods never raise; callers branch on ``success`` and render
    ``error``/``warning`` directly.
    """

    success: bool
    data: T | None = None
    error: str | None = None
    warning: str | None = None

    @classmethod
    def ok(cls, data: T | None = None, warning: str | None = None) -> "StorageResult[T]":
        return cls(success=True, data=data, warning=warning)

    @classmethod
    def fail(cls, error: str) -> "StorageResult[T]":
        return cls(success=False, error=error)


class StorageQuota(BaseModel):
    """Storage usage of the persisted history blob."""

    used: int = Field(ge=0, description="Estimated bytes (UTF-16 cost)")
    limit: int = Field(default=STORAGE_LIMIT_BYTES, gt=0)
    percentage_used: float = Field(ge=0.0, le=100.0)
    scan_count: int = Field(ge=0)

    @computed_field
    @property
    def near_capacity(self) -> bool:
        """Usage has crossed the warning threshold."""
        return self.used > self.limit * WARNING_RATIO

    @computed_field
    @property
    def needs_pruning(self) -> bool:
        """Usage has crossed the aggressive-prune threshold."""
        return self.used > self.limit * PRUNE_RATIO
