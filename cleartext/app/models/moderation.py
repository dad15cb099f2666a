from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictStr


class ModerationRequest(BaseModel):
    """Inbound body of POST /moderate."""

    text: StrictStr

    model_config = ConfigDict(extra="ignore")


class ModerationVerdict(BaseModel):
    """Normalized verdict relayed to the caller."""

    flagged: bool
    scores: Dict[str, Optional[float]] = Field(default_factory=dict)
    categories: Dict[str, Optional[bool]] = Field(default_factory=dict)


class ErrorResponse(BaseModel):
    error: str
    message: str


class HealthStatus(BaseModel):
    status: str = "ok"
    service: str
    version: str
    timestamp: str
    uptime: str
