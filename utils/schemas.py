"""
Pydantic Schemas - Data Validation Models

Defines the schemas shared by the synchronizer and the runner:
- Object kinds handled by a sync run
- Database object records read from the system catalog
- Sync result counters

Usage:
    from utils.schemas import ObjectKind, SyncResult

    total = SyncResult()
    total.add(SyncResult(created=1, kind=ObjectKind.PROCEDURE))
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class ObjectKind(str, Enum):
    """Kinds of SQL objects reconciled by a sync run."""

    PROCEDURE = "procedure"
    FUNCTION = "function"
    VIEW = "view"

    @property
    def plural(self) -> str:
        return f"{self.value}s"

    @property
    def folder(self) -> str:
        """Resource folder (and name prefix) holding this kind's scripts."""
        return self.plural


class DatabaseObject(BaseModel):
    """A user-defined object read from the database catalog."""

    model_config = {"frozen": True}

    schema_name: str = Field(..., min_length=1, description="Owning schema")
    name: str = Field(..., min_length=1, description="Object name")
    kind: ObjectKind = Field(..., description="Object kind")

    @property
    def qualified_name(self) -> str:
        return f"{self.schema_name}.{self.name}"

    @property
    def key(self) -> str:
        """Case-insensitive identity used for set comparisons."""
        return self.qualified_name.casefold()


class SyncResult(BaseModel):
    """Counters produced by a sync run.

    A result with no kind is a combined total built by adding per-kind results.
    """

    kind: Optional[ObjectKind] = Field(default=None, description="Object kind, None for totals")
    created: int = Field(default=0, ge=0)
    altered: int = Field(default=0, ge=0)
    dropped: int = Field(default=0, ge=0)
    errors: int = Field(default=0, ge=0)

    @property
    def applied(self) -> int:
        return self.created + self.altered

    @property
    def ok(self) -> bool:
        return self.errors == 0

    def add(self, other: Optional["SyncResult"]) -> "SyncResult":
        """Add the counters from another result to this one, in place."""
        if other is not None:
            self.created += other.created
            self.altered += other.altered
            self.dropped += other.dropped
            self.errors += other.errors
        return self

    def __add__(self, other: "SyncResult") -> "SyncResult":
        if not isinstance(other, SyncResult):
            return NotImplemented
        return SyncResult().add(self).add(other)

    def summary(self) -> str:
        return (
            f"Created: {self.created}, Altered: {self.altered}, "
            f"Dropped: {self.dropped}, Errors: {self.errors}"
        )

