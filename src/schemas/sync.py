"""Subscription reconciliation schemas."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class SyncResult(BaseModel):
    """Outcome for one user."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    email: str
    old_status: bool
    new_status: bool
    has_active_subscription: bool = False
    error: str | None = None

    @property
    def changed(self) -> bool:
        return self.old_status != self.new_status


class SyncStats(BaseModel):
    """Counters for one reconciliation run."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    total_users: int = 0
    updated_users: int = 0
    error_count: int = 0
    duration_ms: int = 0


class SyncSummary(BaseModel):
    """Reconciliation response; results list only changed or failed users."""

    success: bool = True
    message: str
    stats: SyncStats = Field(default_factory=SyncStats)
    results: list[SyncResult] = Field(default_factory=list)
