"""
Pydantic schemas for user identity exposed in responses.
"""

from pydantic import BaseModel


class UserSummary(BaseModel):
    id: int
    name: str
    email: str

    model_config = {"from_attributes": True}
