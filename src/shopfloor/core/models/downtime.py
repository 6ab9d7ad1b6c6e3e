"""Downtime cause taxonomy models

Read-only from the tracker's point of view: the recorded cause is stored as
plain text, never as a foreign key into this taxonomy.
"""

from pydantic import BaseModel, Field


class DowntimeCategory(BaseModel):
    """Top level grouping (equipment, material, process, personnel...)"""

    id: int
    name: str


class DowntimeReason(BaseModel):
    """A selectable downtime cause"""

    id: int
    code: str = Field(description="Short reason code, e.g. EQ-01")
    category: str = Field(description="Category display name")
    name: str = Field(description="Cause display name")
    description: str = Field(default="")
    is_active: bool = Field(default=True)
