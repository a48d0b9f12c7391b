"""Type definitions for the workload routing table."""

from pydantic import BaseModel, Field, RootModel


class WorkloadDescriptor(BaseModel):
    """Backend a workload name routes to."""

    provider: str
    host: str = Field(min_length=1)
    type: str


class RoutingTable(RootModel[dict[str, WorkloadDescriptor]]):
    """Mapping of workload name (first path segment) to its backend."""

    def get(self, workload: str) -> WorkloadDescriptor | None:
        """Return the descriptor for workload, or None."""
        return self.root.get(workload)

    def __contains__(self, workload: object) -> bool:
        return workload in self.root

    def __len__(self) -> int:
        return len(self.root)
