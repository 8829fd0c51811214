"""Conflict report models produced by the conflict detector."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class ConflictKind(str, Enum):
    """How the two sides disagree about a table."""

    BOTH_MODIFIED = "both-modified"
    MODIFIED_DELETED = "modified-deleted"
    BOTH_ADDED = "both-added"


class ConflictSeverity(str, Enum):
    """How likely the conflict is to need manual attention."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


SEVERITY_ORDER: dict[ConflictSeverity, int] = {
    ConflictSeverity.HIGH: 0,
    ConflictSeverity.MEDIUM: 1,
    ConflictSeverity.LOW: 2,
}


class ConflictingColumn(BaseModel):
    """A column changed on both sides of a merge."""

    name: str
    ours_change: str = Field(..., description="Column status on the current branch.")
    theirs_change: str = Field(..., description="Column status on the target branch.")


class SchemaConflict(BaseModel):
    """A structural conflict on a single table."""

    schema_name: str
    table: str
    kind: ConflictKind
    severity: ConflictSeverity
    description: str
    columns: list[ConflictingColumn] | None = Field(
        default=None,
        description="Overlapping columns, only for high-severity both-modified conflicts.",
    )


class ConflictReport(BaseModel):
    """Result of comparing the current branch with a target branch."""

    current_branch: str | None = None
    target_branch: str
    merge_base: str | None = Field(default=None, description="Abbreviated common-ancestor hash.")
    file_conflicts: list[str] = Field(
        default_factory=list,
        description="Paths git itself would flag as conflicting.",
    )
    schema_conflicts: list[SchemaConflict] = Field(default_factory=list)
    has_schema_file_conflict: bool = False
    conflict_count: int = 0
    summary: str = ""

    @property
    def high_count(self) -> int:
        return sum(1 for c in self.schema_conflicts if c.severity == ConflictSeverity.HIGH)
