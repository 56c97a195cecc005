"""Daily rollup schemas."""
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field


class DailyStat(BaseModel):
    """Login activity for one reporting day (one document per date)."""
    date: str  # YYYY-MM-DD in the reporting timezone
    total_logins: int = 0
    mobile_logins: int = 0
    desktop_logins: int = 0
    unique_user_ids: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def unique_users(self) -> int:
        return len(self.unique_user_ids)

    @classmethod
    def from_doc(cls, doc: dict) -> "DailyStat":
        doc = dict(doc)
        doc.pop("_id", None)
        return cls(**doc)


class DailySummary(BaseModel):
    """One row of the bounded history served to the reporting client."""
    date: str
    total_logins: int
    mobile_logins: int
    desktop_logins: int
    unique_users: int

    @classmethod
    def from_stat(cls, stat: DailyStat) -> "DailySummary":
        return cls(
            date=stat.date,
            total_logins=stat.total_logins,
            mobile_logins=stat.mobile_logins,
            desktop_logins=stat.desktop_logins,
            unique_users=stat.unique_users,
        )

    def to_payload(self) -> dict:
        return {
            "date": self.date,
            "totalLogins": self.total_logins,
            "mobileLogins": self.mobile_logins,
            "desktopLogins": self.desktop_logins,
            "uniqueUsers": self.unique_users,
        }
