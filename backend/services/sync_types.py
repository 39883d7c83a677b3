"""Value types passed between the sync phases and returned to callers."""

from dataclasses import asdict, dataclass, fields


@dataclass(frozen=True)
class RunStats:
    """Counts of successfully reconciled records per entity kind, plus errors.

    Phases return a RunStats for their own work and the orchestrator adds
    them up; nothing mutates a shared counter.
    """

    categories: int = 0
    attributes: int = 0
    products: int = 0
    relations: int = 0
    custom_options: int = 0
    images: int = 0
    inventory: int = 0
    errors: int = 0

    def __add__(self, other: "RunStats") -> "RunStats":
        if not isinstance(other, RunStats):
            return NotImplemented
        return RunStats(
            **{f.name: getattr(self, f.name) + getattr(other, f.name) for f in fields(self)}
        )

    @property
    def processed(self) -> int:
        """Successfully reconciled records across all entity kinds."""
        return sum(
            getattr(self, f.name) for f in fields(self) if f.name != "errors"
        )

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


@dataclass(frozen=True)
class ReconcileResult:
    """Outcome of reconciling one upstream record."""

    local_id: str
    created: bool


@dataclass(frozen=True)
class SyncResult:
    """Final outcome of a sync run."""

    sync_log_id: str
    sync_type: str  # "full" | "incremental"
    status: str  # "completed" | "failed"
    stats: RunStats
    error_message: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == "completed"


class SyncPhaseError(Exception):
    """A phase-level failure that aborts the run.

    Carries the statistics the phase accumulated before it failed so the
    sync log still reflects the work already committed.
    """

    def __init__(self, phase: str, cause: Exception, stats: RunStats | None = None):
        self.phase = phase
        self.cause = cause
        self.stats = stats or RunStats()
        super().__init__(f"{phase} phase failed: {cause}")
