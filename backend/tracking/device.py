"""Device classification from client metadata (User-Agent)."""
from schemas.session import DeviceType

MOBILE_MARKERS = ("mobile", "android", "iphone", "ipad", "tablet", "phone")


def detect_device(user_agent: str | None) -> DeviceType:
    """Case-insensitive substring match; anything unmatched is desktop."""
    ua = (user_agent or "").lower()
    if any(marker in ua for marker in MOBILE_MARKERS):
        return DeviceType.MOBILE
    return DeviceType.DESKTOP
