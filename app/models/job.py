"""Background job models."""
from pydantic import BaseModel, Field, ConfigDict
from typing import Any, Dict, Optional, Literal
from datetime import datetime, timezone
from bson import ObjectId
from app.models.user import PyObjectId

JobStatus = Literal["queued", "running", "done", "failed"]


class JobModel(BaseModel):
    """A unit of work handed to a background consumer."""

    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True,
        json_encoders={ObjectId: str}
    )

    id: Optional[PyObjectId] = Field(default=None, alias="_id")
    kind: str = Field(..., description="Consumer that handles the job, e.g. prompt_generation")
    payload: Dict[str, Any] = Field(default_factory=dict)
    status: JobStatus = "queued"
    attempts: int = 0
    error: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
