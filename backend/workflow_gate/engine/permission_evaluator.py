"""Permission Evaluator - Organizational authorization for workflow steps"""
from typing import Any, Dict, List, Optional

from ..domain.models import (
    ActorPosition, WorkflowPermission, PermissionMatch, MatchedPermission, PermissionResult
)
from ..domain.enums import GroupType, PermissionType, MatchType
from ..repositories.organization_repo import OrganizationRepository
from ..repositories.permission_repo import PermissionRepository
from .condition_evaluator import ConditionEvaluator
from ..utils.logger import get_logger

logger = get_logger(__name__)

REASON_NO_POSITIONS = "User has no active organizational positions"
REASON_NO_PERMISSIONS = "No permissions configured for this workflow step"
REASON_FORBIDDEN = "User has forbidden permission for this action"
REASON_NO_MATCH = "User does not match any required permissions for this workflow step"


class PermissionEvaluator:
    """
    Decide whether an actor may act on a workflow step under a role

    Rules:
    - An actor without active positions is denied outright
    - A step without rules for the role denies everyone
    - Any matched forbidden rule vetoes the evaluation, whatever else matched
    - Otherwise at least one matched required/optional rule allows
    """

    def __init__(
        self,
        organization_repo: Optional[OrganizationRepository] = None,
        permission_repo: Optional[PermissionRepository] = None,
        condition_evaluator: Optional[ConditionEvaluator] = None
    ):
        self.organization_repo = organization_repo or OrganizationRepository()
        self.permission_repo = permission_repo or PermissionRepository()
        self.condition_evaluator = condition_evaluator or ConditionEvaluator()

    def evaluate(
        self,
        actor_id: str,
        workflow_step_id: str,
        actor_role: str,
        context: Dict[str, Any]
    ) -> PermissionResult:
        """
        Evaluate permission for an actor on a step

        Args:
            actor_id: Identity of the caller
            workflow_step_id: Target step
            actor_role: Role the caller claims to act under
            context: Merged instance + request context

        Returns:
            PermissionResult
        """
        log_extra = {"actor_id": actor_id, "step_id": workflow_step_id, "actor_role": actor_role}

        positions = self.organization_repo.get_active_positions(actor_id)
        if not positions:
            logger.info("Permission denied: no active positions", extra=log_extra)
            return PermissionResult(allowed=False, reasons=[REASON_NO_POSITIONS])

        permissions = self.permission_repo.get_active_permissions(workflow_step_id, actor_role)
        if not permissions:
            logger.info("Permission denied: no rules configured", extra=log_extra)
            return PermissionResult(
                allowed=False,
                reasons=[REASON_NO_PERMISSIONS],
                positions=positions
            )

        # Team -> department lookups are reused within this evaluation only
        team_departments: Dict[str, Optional[str]] = {}
        matched: List[MatchedPermission] = []

        for permission in permissions:
            for position in positions:
                match = self._match(permission, position, context, team_departments)
                if not match.matches:
                    continue

                if permission.permission_type == PermissionType.FORBIDDEN:
                    logger.info(
                        f"Permission denied: forbidden rule {permission.permission_id} matched",
                        extra=log_extra
                    )
                    return PermissionResult(
                        allowed=False,
                        reasons=[REASON_FORBIDDEN],
                        positions=positions
                    )

                matched.append(MatchedPermission(
                    permission=permission,
                    position=position,
                    match_type=match.match_type,
                    conditions=match.condition_results
                ))

        allowed = bool(matched)
        logger.info(
            f"Permission {'granted' if allowed else 'denied'} with {len(matched)} matching rule(s)",
            extra={**log_extra, "result": "allowed" if allowed else "denied"}
        )
        return PermissionResult(
            allowed=allowed,
            reasons=[] if allowed else [REASON_NO_MATCH],
            matched_permissions=matched,
            positions=positions
        )

    def _match(
        self,
        permission: WorkflowPermission,
        position: ActorPosition,
        context: Dict[str, Any],
        team_departments: Dict[str, Optional[str]]
    ) -> PermissionMatch:
        """Match one rule against one position"""
        group_matches = self._group_matches(permission, position, team_departments)

        designation_matches = True
        if permission.designation_id:
            designation_matches = position.designation_id == permission.designation_id

        condition_results: Dict[str, bool] = {}
        if permission.conditions:
            condition_results = self.condition_evaluator.evaluate(
                permission.conditions, context, position
            )
            designation_matches = designation_matches and self.condition_evaluator.passed(
                condition_results
            )

        matches = group_matches and designation_matches
        match_type = MatchType.NONE
        if matches:
            match_type = MatchType.EXACT if permission.designation_id else MatchType.GROUP

        return PermissionMatch(
            matches=matches,
            match_type=match_type,
            condition_results=condition_results
        )

    def _group_matches(
        self,
        permission: WorkflowPermission,
        position: ActorPosition,
        team_departments: Dict[str, Optional[str]]
    ) -> bool:
        if permission.group_type == GroupType.DEPARTMENT:
            if position.group_type == GroupType.DEPARTMENT:
                return position.group_id == permission.group_id
            if position.group_type == GroupType.TEAM:
                if position.group_id not in team_departments:
                    team_departments[position.group_id] = (
                        self.organization_repo.get_team_department_id(position.group_id)
                    )
                department_id = team_departments[position.group_id]
                return department_id is not None and department_id == permission.group_id
            return False

        if permission.group_type == GroupType.TEAM:
            return (
                position.group_type == GroupType.TEAM
                and position.group_id == permission.group_id
            )

        return False
