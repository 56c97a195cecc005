"""Stats snapshot — the point-in-time result of a stats query."""
from datetime import datetime
from pydantic import BaseModel


class StatsSnapshot(BaseModel):
    current_online: int
    current_mobile: int
    current_desktop: int
    today_logins: int = 0
    today_mobile: int = 0
    today_desktop: int = 0
    today_unique_users: int = 0
    date: str
    generated_at: datetime

    def to_payload(self) -> dict:
        """Wire shape consumed by the reporting client."""
        return {
            "currentOnline": self.current_online,
            "currentMobile": self.current_mobile,
            "currentDesktop": self.current_desktop,
            "todayLogins": self.today_logins,
            "todayMobile": self.today_mobile,
            "todayDesktop": self.today_desktop,
            "todayUniqueUsers": self.today_unique_users,
            "date": self.date,
            "updatedAt": self.generated_at.isoformat(),
        }
