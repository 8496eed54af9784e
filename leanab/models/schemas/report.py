from typing import Dict, List

from pydantic import BaseModel, Field


class ExperimentReport(BaseModel):
    """Funnel metrics for every group of one experiment, ready for a table renderer."""

    experiment: str
    groups: List[str] = Field(..., description="Column order: groups as originally defined.")
    user_counts: Dict[str, int] = Field(
        default_factory=dict, description="Users currently assigned to each group."
    )
    rows: Dict[str, Dict[str, str]] = Field(
        default_factory=dict,
        description="metric name -> group name -> display value, in metric order.",
    )

    @property
    def metrics(self) -> List[str]:
        return list(self.rows)
