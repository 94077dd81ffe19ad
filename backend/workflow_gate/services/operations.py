"""
Operation Dispatcher

Resolves an Operation identifier to its request model and handler once, at
the service boundary. Requests are validated before any store access.
"""
from typing import Any, Callable, Dict, Optional, Tuple, Type, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from ..domain.models import ActorContext
from ..domain.enums import Operation, InstanceStatus
from ..domain.errors import ValidationError
from .workflow_instance_service import WorkflowInstanceService
from ..utils.logger import get_logger

logger = get_logger(__name__)


# ============================================================================
# Request Models
# ============================================================================

class OperationRequest(BaseModel):
    """Base request; accepts snake_case and camelCase field names"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class CreateInstanceRequest(OperationRequest):
    workflow_id: str = Field(..., min_length=1)
    organization_id: str = Field(..., min_length=1)
    initial_context: Dict[str, Any] = Field(default_factory=dict)


class TransitionRequest(OperationRequest):
    instance_id: str = Field(..., min_length=1)
    target_state: str = Field(..., min_length=1)
    actor_role: str = Field(..., min_length=1)
    context: Dict[str, Any] = Field(default_factory=dict)
    reason: Optional[str] = None


class CheckPermissionRequest(OperationRequest):
    workflow_step_id: str = Field(..., min_length=1)
    actor_role: str = Field(..., min_length=1)
    context: Dict[str, Any] = Field(default_factory=dict)


class InstanceRequest(OperationRequest):
    instance_id: str = Field(..., min_length=1)


class ListInstancesRequest(OperationRequest):
    organization_id: Optional[str] = None
    status: Optional[InstanceStatus] = None
    limit: Optional[int] = Field(None, ge=1)
    offset: int = Field(0, ge=0)


class EmptyRequest(OperationRequest):
    pass


Handler = Callable[[ActorContext, Any], Any]


# ============================================================================
# Dispatcher
# ============================================================================

class OperationDispatcher:
    """Closed command table over WorkflowInstanceService"""

    def __init__(self, service: WorkflowInstanceService):
        self.service = service
        self._table: Dict[Operation, Tuple[Type[OperationRequest], Handler]] = {
            Operation.CREATE_INSTANCE: (CreateInstanceRequest, self._create_instance),
            Operation.TRANSITION: (TransitionRequest, self._transition),
            Operation.CHECK_PERMISSION: (CheckPermissionRequest, self._check_permission),
            Operation.PAUSE_INSTANCE: (InstanceRequest, self._pause_instance),
            Operation.RESUME_INSTANCE: (InstanceRequest, self._resume_instance),
            Operation.CANCEL_INSTANCE: (InstanceRequest, self._cancel_instance),
            Operation.LIST_INSTANCES: (ListInstancesRequest, self._list_instances),
            Operation.GET_INSTANCE: (InstanceRequest, self._get_instance),
            Operation.LIST_HISTORY: (InstanceRequest, self._list_history),
            Operation.LIST_WORKFLOWS: (EmptyRequest, self._list_workflows),
        }

    def dispatch(
        self,
        operation: Operation,
        actor: ActorContext,
        payload: Union[OperationRequest, Dict[str, Any], None] = None
    ) -> Any:
        """
        Run an operation

        Args:
            operation: Operation identifier
            actor: Authenticated caller
            payload: Parsed request model or raw mapping

        Returns:
            JSON-ready result

        Raises:
            ValidationError: Payload does not satisfy the operation's request model
        """
        request_model, handler = self._table[operation]
        request = self._parse(operation, request_model, payload)

        logger.info(
            f"Dispatching operation {operation.value}",
            extra={"action": operation.value, "actor_id": actor.user_id}
        )
        return handler(actor, request)

    def _parse(
        self,
        operation: Operation,
        request_model: Type[OperationRequest],
        payload: Union[OperationRequest, Dict[str, Any], None]
    ) -> OperationRequest:
        if isinstance(payload, request_model):
            return payload
        if isinstance(payload, BaseModel):
            payload = payload.model_dump()
        try:
            return request_model.model_validate(payload or {})
        except PydanticValidationError as e:
            raise ValidationError(
                f"Invalid request for {operation.value}",
                details={"errors": e.errors(include_url=False, include_context=False)}
            )

    # =========================================================================
    # Handlers
    # =========================================================================

    def _create_instance(self, actor: ActorContext, request: CreateInstanceRequest) -> Dict[str, Any]:
        instance = self.service.create_instance(
            workflow_id=request.workflow_id,
            organization_id=request.organization_id,
            actor=actor,
            initial_context=request.initial_context
        )
        return instance.model_dump(mode="json")

    def _transition(self, actor: ActorContext, request: TransitionRequest) -> Dict[str, Any]:
        result = self.service.transition(
            instance_id=request.instance_id,
            target_state=request.target_state,
            actor_role=request.actor_role,
            actor=actor,
            context=request.context,
            reason=request.reason
        )
        return result.model_dump(mode="json")

    def _check_permission(self, actor: ActorContext, request: CheckPermissionRequest) -> Dict[str, Any]:
        result = self.service.check_permission(
            workflow_step_id=request.workflow_step_id,
            actor_role=request.actor_role,
            actor=actor,
            context=request.context
        )
        return result.model_dump(mode="json")

    def _pause_instance(self, actor: ActorContext, request: InstanceRequest) -> Dict[str, Any]:
        return self.service.pause_instance(request.instance_id, actor).model_dump(mode="json")

    def _resume_instance(self, actor: ActorContext, request: InstanceRequest) -> Dict[str, Any]:
        return self.service.resume_instance(request.instance_id, actor).model_dump(mode="json")

    def _cancel_instance(self, actor: ActorContext, request: InstanceRequest) -> Dict[str, Any]:
        return self.service.cancel_instance(request.instance_id, actor).model_dump(mode="json")

    def _list_instances(self, actor: ActorContext, request: ListInstancesRequest) -> Dict[str, Any]:
        instances = self.service.list_instances(
            organization_id=request.organization_id,
            status=request.status,
            limit=request.limit,
            offset=request.offset
        )
        total = self.service.count_instances(
            organization_id=request.organization_id,
            status=request.status
        )
        return {
            "items": [i.model_dump(mode="json") for i in instances],
            "total": total,
            "offset": request.offset,
        }

    def _get_instance(self, actor: ActorContext, request: InstanceRequest) -> Dict[str, Any]:
        return self.service.get_instance(request.instance_id).model_dump(mode="json")

    def _list_history(self, actor: ActorContext, request: InstanceRequest) -> list:
        return [e.model_dump(mode="json") for e in self.service.list_history(request.instance_id)]

    def _list_workflows(self, actor: ActorContext, request: EmptyRequest) -> list:
        return [w.model_dump(mode="json") for w in self.service.list_workflows()]
