"""UnproductiveEvent Domain Model

One downtime interval recorded while a task is paused. Created only when a cause
is recorded, closed only on resume, never deleted.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class UnproductiveEvent(BaseModel):
    """A cause interval attached to a task

    end_time=None means the interval is still open; duration stays 0 until close.
    """

    cause: str = Field(description="Display value of the selected downtime reason")
    observations: str = Field(default="", description="Operator free-text notes")
    start_time: datetime = Field(description="When the interval was opened")
    end_time: datetime | None = Field(default=None, description="None while open")
    duration: float = Field(default=0.0, ge=0, description="Seconds, set on close")

    @property
    def is_open(self) -> bool:
        return self.end_time is None
