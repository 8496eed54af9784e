from typing import List

from pydantic import BaseModel, ConfigDict, Field, StrictInt


class GroupWeight(BaseModel):
    """One hypothesis group and the share of new users it should receive."""

    name: str
    # Strict: booleans, strings and floats are rejected rather than coerced.
    # Range and total are checked by the registry.
    weight: StrictInt = Field(..., description="Percentage (0-100) of new users put in this group.")

    model_config = ConfigDict(from_attributes=True)


class ExperimentCreateModel(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    groups: List[GroupWeight] = Field(
        ...,
        description="Groups in order; the first one is the default (usually 'control').",
    )


class ExperimentResponseModel(BaseModel):
    name: str
    groups: List[GroupWeight] = Field(..., description="Stored groups in their original order.")


class ExperimentListModel(BaseModel):
    experiments: List[str] = Field(..., description="Experiment names, oldest first.")
