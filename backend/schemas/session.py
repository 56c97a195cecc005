"""Session schemas — one record per login episode."""
from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field
import uuid


class DeviceType(str, Enum):
    MOBILE = "mobile"
    DESKTOP = "desktop"


class EndReason(str, Enum):
    SUPERSEDED = "superseded"  # closed by a newer login of the same user
    LOGOUT = "logout"
    EXPIRED = "expired"


class Session(BaseModel):
    """A login episode. Active until logout, supersession or expiry."""
    model_config = ConfigDict(use_enum_values=True)

    session_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    user_id: str
    device_type: DeviceType
    ip_address: Optional[str] = None
    user_agent: str = ""
    is_active: bool = True
    login_at: datetime
    last_seen: datetime
    ended_at: Optional[datetime] = None
    end_reason: Optional[EndReason] = None

    def to_doc(self) -> dict:
        """Convert to MongoDB document."""
        return self.model_dump(mode="python")

    @classmethod
    def from_doc(cls, doc: dict) -> "Session":
        doc = dict(doc)
        doc.pop("_id", None)
        return cls(**doc)
