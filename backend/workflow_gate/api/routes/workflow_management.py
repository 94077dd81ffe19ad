"""Workflow Management API Routes - Instance lifecycle, transitions and permission checks"""
from typing import Any, Optional
from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel

from ..deps import get_current_user_dep, get_correlation_id_dep, get_dispatcher_dep
from ...domain.models import ActorContext
from ...domain.enums import Operation, InstanceStatus
from ...services.operations import (
    OperationDispatcher, CreateInstanceRequest, TransitionRequest,
    CheckPermissionRequest, InstanceRequest, ListInstancesRequest
)
from ...utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter()


# ============================================================================
# Response Models
# ============================================================================

class OperationResponse(BaseModel):
    """Envelope for every successful operation"""
    success: bool = True
    data: Any = None


# ============================================================================
# Mutations
# ============================================================================

@router.post(
    f"/{Operation.CREATE_INSTANCE.value}",
    response_model=OperationResponse,
    status_code=status.HTTP_201_CREATED
)
def create_instance(
    request: CreateInstanceRequest,
    actor: ActorContext = Depends(get_current_user_dep),
    dispatcher: OperationDispatcher = Depends(get_dispatcher_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """
    Create a workflow instance

    The instance starts in the workflow's first active step.
    """
    data = dispatcher.dispatch(Operation.CREATE_INSTANCE, actor, request)
    return OperationResponse(data=data)


@router.post(f"/{Operation.TRANSITION.value}", response_model=OperationResponse)
def transition(
    request: TransitionRequest,
    actor: ActorContext = Depends(get_current_user_dep),
    dispatcher: OperationDispatcher = Depends(get_dispatcher_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """
    Move an instance to a target step

    Errors: 404 instance/step missing, 400 instance not active,
    403 permission denied (with reasons), 409 concurrent modification.
    """
    data = dispatcher.dispatch(Operation.TRANSITION, actor, request)
    return OperationResponse(data=data)


@router.post(f"/{Operation.CHECK_PERMISSION.value}", response_model=OperationResponse)
def check_permission(
    request: CheckPermissionRequest,
    actor: ActorContext = Depends(get_current_user_dep),
    dispatcher: OperationDispatcher = Depends(get_dispatcher_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Dry-run the permission evaluator for the caller; nothing is written"""
    data = dispatcher.dispatch(Operation.CHECK_PERMISSION, actor, request)
    return OperationResponse(data=data)


@router.post(f"/{Operation.PAUSE_INSTANCE.value}", response_model=OperationResponse)
def pause_instance(
    request: InstanceRequest,
    actor: ActorContext = Depends(get_current_user_dep),
    dispatcher: OperationDispatcher = Depends(get_dispatcher_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    data = dispatcher.dispatch(Operation.PAUSE_INSTANCE, actor, request)
    return OperationResponse(data=data)


@router.post(f"/{Operation.RESUME_INSTANCE.value}", response_model=OperationResponse)
def resume_instance(
    request: InstanceRequest,
    actor: ActorContext = Depends(get_current_user_dep),
    dispatcher: OperationDispatcher = Depends(get_dispatcher_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    data = dispatcher.dispatch(Operation.RESUME_INSTANCE, actor, request)
    return OperationResponse(data=data)


@router.post(f"/{Operation.CANCEL_INSTANCE.value}", response_model=OperationResponse)
def cancel_instance(
    request: InstanceRequest,
    actor: ActorContext = Depends(get_current_user_dep),
    dispatcher: OperationDispatcher = Depends(get_dispatcher_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    data = dispatcher.dispatch(Operation.CANCEL_INSTANCE, actor, request)
    return OperationResponse(data=data)


# ============================================================================
# Reads
# ============================================================================

@router.get("/instances", response_model=OperationResponse)
def list_instances(
    organization_id: Optional[str] = Query(None),
    instance_status: Optional[InstanceStatus] = Query(None, alias="status"),
    limit: Optional[int] = Query(None, ge=1),
    offset: int = Query(0, ge=0),
    actor: ActorContext = Depends(get_current_user_dep),
    dispatcher: OperationDispatcher = Depends(get_dispatcher_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """List instances, newest first"""
    request = ListInstancesRequest(
        organization_id=organization_id,
        status=instance_status,
        limit=limit,
        offset=offset
    )
    data = dispatcher.dispatch(Operation.LIST_INSTANCES, actor, request)
    return OperationResponse(data=data)


@router.get("/instances/{instance_id}", response_model=OperationResponse)
def get_instance(
    instance_id: str,
    actor: ActorContext = Depends(get_current_user_dep),
    dispatcher: OperationDispatcher = Depends(get_dispatcher_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    data = dispatcher.dispatch(Operation.GET_INSTANCE, actor, InstanceRequest(instance_id=instance_id))
    return OperationResponse(data=data)


@router.get("/history", response_model=OperationResponse)
def list_history(
    instance_id: str = Query(..., min_length=1),
    actor: ActorContext = Depends(get_current_user_dep),
    dispatcher: OperationDispatcher = Depends(get_dispatcher_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Transition history of an instance, most recent first"""
    data = dispatcher.dispatch(Operation.LIST_HISTORY, actor, InstanceRequest(instance_id=instance_id))
    return OperationResponse(data=data)


@router.get("/workflows", response_model=OperationResponse)
def list_workflows(
    actor: ActorContext = Depends(get_current_user_dep),
    dispatcher: OperationDispatcher = Depends(get_dispatcher_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Active workflows with their active steps, ordered by name"""
    data = dispatcher.dispatch(Operation.LIST_WORKFLOWS, actor)
    return OperationResponse(data=data)
