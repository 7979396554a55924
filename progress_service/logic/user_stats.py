"""
User statistics and streak days

Streaks compare calendar days in one configured timezone. Any new calendar
day adds one to the streak, a gap of several days included; the date of the
previous session is all that is stored.
"""
from datetime import date, datetime, timezone as dt_timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
import logging

from progress_service.schemas import UserStats

logger = logging.getLogger(__name__)


def get_user_day(moment: datetime, timezone: str = "UTC") -> date:
    """
    Calendar day of a moment in the given IANA timezone.

    Naive datetimes are taken as UTC. Unknown zones fall back to UTC.
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=dt_timezone.utc)

    try:
        tz = ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, ValueError) as e:
        logger.warning(f"Invalid timezone {timezone}, falling back to UTC: {e}")
        tz = dt_timezone.utc

    return moment.astimezone(tz).date()


def is_new_day(last_played: Optional[datetime], now: datetime, timezone: str = "UTC") -> bool:
    if last_played is None:
        return True
    return get_user_day(last_played, timezone) != get_user_day(now, timezone)


def update_user_stats(
    stats: UserStats,
    correct_answers: int,
    wrong_answers: int,
    words_learned: int,
    now: Optional[datetime] = None,
    timezone: str = "UTC"
) -> UserStats:
    """
    Fold one finished session into the statistics.

    Returns a new UserStats; counters only grow, last_played moves to now.
    """
    now = now or datetime.now(dt_timezone.utc)

    streak_days = stats.streak_days
    if is_new_day(stats.last_played, now, timezone):
        streak_days += 1
    elif streak_days == 0:
        streak_days = 1

    updated = UserStats(
        total_words=stats.total_words + max(words_learned, 0),
        correct_answers=stats.correct_answers + max(correct_answers, 0),
        wrong_answers=stats.wrong_answers + max(wrong_answers, 0),
        last_played=now,
        streak_days=streak_days,
    )

    logger.debug(f"User stats updated: {stats} -> {updated}")
    return updated


def accuracy_percentage(stats: UserStats) -> float:
    answered = stats.correct_answers + stats.wrong_answers
    if answered == 0:
        return 0.0
    return round(stats.correct_answers / answered * 100, 1)
