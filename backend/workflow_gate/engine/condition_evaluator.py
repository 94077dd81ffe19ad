"""Condition Evaluator - Evaluation of permission rule conditions"""
from typing import Any, Callable, Dict, Optional

from ..domain.models import ActorPosition
from ..domain.enums import ConditionKey
from .time_constraint_evaluator import TimeConstraintEvaluator
from ..utils.logger import get_logger

logger = get_logger(__name__)


class ConditionEvaluator:
    """
    Evaluate the condition set attached to a permission rule

    Each key evaluates independently; the rule passes only if every key does.
    Unrecognized keys evaluate to True (fail open) and are logged.
    """

    def __init__(self, time_evaluator: Optional[TimeConstraintEvaluator] = None):
        self.time_evaluator = time_evaluator or TimeConstraintEvaluator()

    def evaluate(
        self,
        conditions: Dict[str, Any],
        context: Dict[str, Any],
        position: ActorPosition
    ) -> Dict[str, bool]:
        """
        Evaluate a condition set

        Args:
            conditions: Condition key -> threshold/value
            context: Run-time instance context
            position: Position the actor holds

        Returns:
            Condition key -> outcome
        """
        results: Dict[str, bool] = {}
        job_level = position.job_level or 0

        for key, value in conditions.items():
            if key == ConditionKey.MIN_JOB_LEVEL.value:
                results[key] = self._compare_numeric(job_level, value, lambda a, b: a >= b)

            elif key == ConditionKey.MAX_JOB_LEVEL.value:
                results[key] = self._compare_numeric(job_level, value, lambda a, b: a <= b)

            elif key == ConditionKey.WORKFLOW_AMOUNT_LIMIT.value:
                amount = context.get("amount") or 0
                results[key] = self._compare_numeric(amount, value, lambda a, b: a <= b)

            elif key == ConditionKey.TIME_CONSTRAINT.value:
                results[key] = self.time_evaluator.evaluate(value)

            else:
                logger.warning(
                    f"Unrecognized permission condition '{key}' evaluated as satisfied",
                    extra={"action": "condition_fail_open"}
                )
                results[key] = True

        return results

    @staticmethod
    def passed(results: Dict[str, bool]) -> bool:
        """True if every evaluated condition holds"""
        return all(result is True for result in results.values())

    def _compare_numeric(
        self,
        actual: Any,
        threshold: Any,
        comparator: Callable[[float, float], bool]
    ) -> bool:
        """Compare numeric values; malformed operands fail closed"""
        if isinstance(actual, bool) or isinstance(threshold, bool):
            return False
        try:
            return comparator(float(actual), float(threshold))
        except (ValueError, TypeError, OverflowError):
            return False
