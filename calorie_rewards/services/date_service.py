"""
Date calculation service.
Resolves the effective local date used as the daily reward key.
"""
from datetime import datetime, timedelta, date
from typing import Optional


class DateService:
    """Service for date-related operations"""

    @staticmethod
    def get_effective_date(day_start_time: Optional[str] = None, now: Optional[datetime] = None) -> date:
        """
        Get the effective current date based on the day start time.

        If a day start time is configured and the current time is before it,
        returns yesterday's date. Otherwise returns today's date.

        Example: If day_start_time = "04:00" and current time is 01:30,
        the effective date is still yesterday, so a late-night login does
        not consume the next day's reward.

        Args:
            day_start_time: "HH:MM" (or "HHMM"); empty or None disables the shift
            now: Current local time (defaults to datetime.now())

        Returns:
            Effective date (today or yesterday)
        """
        now = now or datetime.now()
        today = now.date()

        if not day_start_time:
            return today

        try:
            hour, minute = DateService.parse_time(day_start_time)
        except (ValueError, IndexError):
            return today

        current_minutes = now.hour * 60 + now.minute
        start_minutes = hour * 60 + minute

        if current_minutes < start_minutes:
            return today - timedelta(days=1)

        return today

    @staticmethod
    def parse_time(time_str: str) -> tuple[int, int]:
        """
        Parse time string into hour and minute.

        Args:
            time_str: Time string in "HH:MM" or "HHMM" format

        Returns:
            Tuple of (hour, minute)

        Raises:
            ValueError: If time string is invalid
        """
        digits = time_str.replace(":", "").zfill(4)
        hour = int(digits[:2])
        minute = int(digits[2:])
        if not (0 <= hour < 24 and 0 <= minute < 60):
            raise ValueError(f"Invalid time: {time_str}")
        return hour, minute
