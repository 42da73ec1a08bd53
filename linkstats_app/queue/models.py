"""
Data models for queue messages.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class VisitMessage(BaseModel):
    """
    Visit hand-off published by the redirect route.

    Carries the request context the recorder needs; OS and device are
    parsed on the hot path since the raw request is gone by the time the
    worker sees the message.
    """

    alias: str = Field(..., description="The alias that was visited")
    timestamp: datetime = Field(default_factory=utcnow, description="When the visit occurred")

    ip_address: str = Field("unknown", description="Client IP address")
    user_agent: Optional[str] = Field(None, description="User agent string")
    os_type: str = Field("Unknown", description="Operating system family")
    device_type: str = Field("desktop", description="mobile or desktop")

    # Set by the queue backend on consume, used for acknowledgement
    message_id: Optional[str] = Field(None, exclude=True)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "alias": "Xk3_p9aQ",
                "timestamp": "2025-10-29T10:30:00Z",
                "ip_address": "203.0.113.7",
                "user_agent": "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X)",
                "os_type": "iOS",
                "device_type": "mobile"
            }
        }
    )
