"""Time Constraint Evaluator - Calendar and deadline conditions"""
from datetime import datetime, time
from typing import Any, Callable, Optional

from ..config.settings import settings
from ..utils.time import utc_now, ensure_utc, to_local
from ..utils.logger import get_logger

logger = get_logger(__name__)


class TimeConstraintEvaluator:
    """
    Evaluate a ``time_constraint`` condition value against the clock

    Recognized fields:
    - business_hours_only: weekday and wall-clock time within business hours
      (inclusive, minute resolution). Decides the result on its own when set.
    - deadline: ISO timestamp; passes while now is strictly before it.

    Anything else passes.
    """

    def __init__(
        self,
        timezone_name: Optional[str] = None,
        start_hour: Optional[int] = None,
        end_hour: Optional[int] = None,
        clock: Callable[[], datetime] = utc_now
    ):
        self.timezone_name = (
            timezone_name if timezone_name is not None else settings.business_hours_timezone
        )
        self.start = time(start_hour if start_hour is not None else settings.business_hours_start)
        self.end = time(end_hour if end_hour is not None else settings.business_hours_end)
        self._clock = clock

    def evaluate(self, constraint: Any) -> bool:
        """Evaluate a time constraint mapping"""
        if not isinstance(constraint, dict):
            return True

        now = self._clock()

        if constraint.get("business_hours_only"):
            return self._within_business_hours(now)

        deadline = constraint.get("deadline")
        if deadline:
            try:
                return now < ensure_utc(deadline)
            except (ValueError, TypeError, OverflowError):
                logger.warning(f"Unparseable deadline in time constraint: {deadline!r}")
                return False

        return True

    def _within_business_hours(self, now: datetime) -> bool:
        local = to_local(now, self.timezone_name)
        if local.isoweekday() > 5:
            return False
        wall_clock = local.time().replace(second=0, microsecond=0)
        return self.start <= wall_clock <= self.end
