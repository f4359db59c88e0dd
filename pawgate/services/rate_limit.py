from __future__ import annotations

from datetime import datetime, time, timedelta, timezone
from typing import Callable
from zoneinfo import ZoneInfo

from sqlalchemy.ext.asyncio import AsyncSession

from pawgate.core.errors import RateLimitExceeded
from pawgate.persistence.repos import audit as audit_repo


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def local_day_window(now: datetime, tz_name: str) -> tuple[datetime, datetime]:
    # Convert the local calendar day containing `now` into a UTC [start, end) window.
    zone = ZoneInfo(tz_name)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    local_date = now.astimezone(zone).date()
    start = datetime.combine(local_date, time.min, tzinfo=zone)
    end = datetime.combine(local_date + timedelta(days=1), time.min, tzinfo=zone)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


class DailyVerificationLimiter:
    """Per-partner daily ceiling on successful verifications.

    Usage is counted from durable audit history rather than an in-process
    counter, so the limit holds across workers without a shared cache.
    """

    def __init__(
        self,
        *,
        tz_name: str = "UTC",
        time_provider: Callable[[], datetime] | None = None,
    ) -> None:
        self._tz_name = tz_name
        # Allow time injection for deterministic day-rollover tests.
        self._time_provider = time_provider or _utc_now

    async def used_today(self, session: AsyncSession, *, partner_id: str) -> int:
        start, end = local_day_window(self._time_provider(), self._tz_name)
        return await audit_repo.count_successful_verifications(
            session, partner_id=partner_id, since=start, until=end
        )

    async def enforce(self, session: AsyncSession, *, partner_id: str, daily_limit: int) -> int:
        used = await self.used_today(session, partner_id=partner_id)
        if used >= daily_limit:
            raise RateLimitExceeded(audit_reason=f"daily_limit_reached:{used}/{daily_limit}")
        return used
