import re
from datetime import UTC, datetime

REPORT_URL_RE = re.compile(
    r"(?:https?://)?(?:www\.)?fflogs\.com/reports/(?P<code>[a-zA-Z0-9]{16})"
)
REPORT_CODE_RE = re.compile(r"(?P<code>[a-zA-Z0-9]{16})")


def from_epoch_ms(millis: int) -> datetime | None:
    """Convert epoch milliseconds to an aware UTC datetime, None if out of range."""
    try:
        return datetime.fromtimestamp(millis / 1000, tz=UTC)
    except (OverflowError, OSError, ValueError):
        return None


def extract_report_code(code_or_url: str) -> str | None:
    """Pull the 16-character report code out of a bare code or a report URL."""
    match = REPORT_URL_RE.search(code_or_url) or REPORT_CODE_RE.search(code_or_url)
    return match.group("code") if match else None
