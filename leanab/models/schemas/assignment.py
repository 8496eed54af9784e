from typing import List, Optional

from pydantic import BaseModel, Field

from .experiment import GroupWeight


class AssignmentRequestModel(BaseModel):
    groups: List[GroupWeight] = Field(
        ...,
        min_length=1,
        description="Groups used to create the experiment on first use; ignored afterwards.",
    )


class AssignmentModel(BaseModel):
    experiment: str
    user_id: Optional[str] = Field(None, description="None for anonymous callers.")
    group: str = Field(..., description="The hypothesis group the user should be exposed to.")


class MembershipModel(BaseModel):
    experiment: str
    user_id: Optional[str] = None
    belongs: bool
