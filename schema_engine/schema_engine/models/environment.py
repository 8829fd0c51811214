"""Branch-to-environment mapping models.

The :class:`EnvironmentConfig` is committed with the project (it lives in the
project metadata file) and shared across the team.  Per-developer
connection overrides live in :class:`~schema_engine.models.project.LocalOverride`
and are never versioned.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class EnvironmentMapping(BaseModel):
    """Maps one git branch (exact match) to an environment label."""

    branch: str = Field(..., min_length=1, description="Git branch name, e.g. 'main'.")
    environment: str = Field(..., min_length=1, description="Environment label, e.g. 'production'.")
    connection_url: str | None = Field(default=None, description="Shared connection URL for this environment.")
    is_production: bool = Field(default=False, description="Marks the environment as production.")


class EnvironmentConfig(BaseModel):
    """Ordered mapping list plus an optional default label."""

    mappings: list[EnvironmentMapping] = Field(default_factory=list)
    default_environment: str | None = Field(
        default=None,
        description="Label used when the current branch matches no mapping.",
    )

    def find(self, branch: str | None) -> EnvironmentMapping | None:
        """Return the first mapping whose branch equals *branch*."""
        if branch is None:
            return None
        for mapping in self.mappings:
            if mapping.branch == branch:
                return mapping
        return None


class ConnectionSource(str, Enum):
    """Which tier supplied the resolved connection URL."""

    LOCAL = "local"
    MAPPING = "mapping"
    NONE = "none"


class ResolvedEnvironment(BaseModel):
    """Environment resolved for the current working copy."""

    branch: str | None = None
    environment: str
    is_production: bool = False
    connection_url: str | None = None
    connection_source: ConnectionSource = ConnectionSource.NONE
    mapping: EnvironmentMapping | None = None
