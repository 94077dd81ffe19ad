"""Instance Repository - Data access for workflow instances and their history"""
from typing import Any, Dict, List, Optional
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo import DESCENDING, ReturnDocument

from .mongo_client import get_collection
from ..domain.models import WorkflowInstance, WorkflowHistoryEntry
from ..domain.enums import InstanceStatus
from ..domain.errors import InstanceNotFoundError, ConcurrencyError
from ..utils.time import utc_now
from ..utils.logger import get_logger

logger = get_logger(__name__)


class InstanceRepository:
    """Repository for workflow instances (mutable) and workflow history (append-only)"""

    def __init__(self, db: Optional[Database] = None):
        self._instances: Collection = get_collection("workflow_instances", db)
        self._history: Collection = get_collection("workflow_history", db)

    # =========================================================================
    # Instance CRUD
    # =========================================================================

    def create_instance(self, instance: WorkflowInstance) -> WorkflowInstance:
        """Create a new workflow instance"""
        # Keep datetimes native so MongoDB sorts them correctly
        doc = instance.model_dump()
        doc["_id"] = instance.instance_id

        self._instances.insert_one(doc)
        logger.info(
            f"Created workflow instance: {instance.instance_id}",
            extra={"instance_id": instance.instance_id, "workflow_id": instance.workflow_id}
        )
        return instance

    def get_instance(self, instance_id: str) -> Optional[WorkflowInstance]:
        """Get instance by ID"""
        doc = self._instances.find_one({"instance_id": instance_id})
        if doc:
            doc.pop("_id", None)
            return WorkflowInstance.model_validate(doc)
        return None

    def get_instance_or_raise(self, instance_id: str) -> WorkflowInstance:
        """Get instance by ID or raise error"""
        instance = self.get_instance(instance_id)
        if not instance:
            raise InstanceNotFoundError(
                "Workflow instance not found",
                details={"instance_id": instance_id}
            )
        return instance

    def update_instance(
        self,
        instance_id: str,
        updates: Dict[str, Any],
        expected_version: Optional[int] = None
    ) -> WorkflowInstance:
        """
        Update instance, bumping its version

        Args:
            instance_id: Instance ID
            updates: Fields to set
            expected_version: When given, the update only applies if the stored
                version still matches (compare-and-swap)

        Raises:
            ConcurrencyError: Version changed since it was read
            InstanceNotFoundError: Instance does not exist
        """
        updates = dict(updates)
        updates.setdefault("updated_at", utc_now())

        filter_query: Dict[str, Any] = {"instance_id": instance_id}
        if expected_version is not None:
            filter_query["version"] = expected_version

        result = self._instances.find_one_and_update(
            filter_query,
            {"$set": updates, "$inc": {"version": 1}},
            return_document=ReturnDocument.AFTER
        )

        if result is None:
            if expected_version is not None:
                exists = self._instances.find_one({"instance_id": instance_id})
                if exists:
                    logger.warning(
                        f"Concurrent modification of instance {instance_id}",
                        extra={"instance_id": instance_id}
                    )
                    raise ConcurrencyError(
                        "Workflow instance was modified concurrently. Please refresh and try again.",
                        details={"instance_id": instance_id, "expected_version": expected_version}
                    )
            raise InstanceNotFoundError(
                "Workflow instance not found",
                details={"instance_id": instance_id}
            )

        result.pop("_id", None)
        logger.info(f"Updated workflow instance: {instance_id}", extra={"instance_id": instance_id})
        return WorkflowInstance.model_validate(result)

    def list_instances(
        self,
        organization_id: Optional[str] = None,
        status: Optional[InstanceStatus] = None,
        skip: int = 0,
        limit: int = 50
    ) -> List[WorkflowInstance]:
        """List instances, newest first"""
        query = self._build_list_query(organization_id, status)

        cursor = self._instances.find(query).sort("created_at", DESCENDING).skip(skip).limit(limit)

        instances = []
        for doc in cursor:
            doc.pop("_id", None)
            instances.append(WorkflowInstance.model_validate(doc))
        return instances

    def count_instances(
        self,
        organization_id: Optional[str] = None,
        status: Optional[InstanceStatus] = None
    ) -> int:
        """Count instances matching the list filters"""
        return self._instances.count_documents(self._build_list_query(organization_id, status))

    def _build_list_query(
        self,
        organization_id: Optional[str],
        status: Optional[InstanceStatus]
    ) -> Dict[str, Any]:
        query: Dict[str, Any] = {}
        if organization_id:
            query["organization_id"] = organization_id
        if status:
            query["status"] = status.value
        return query

    # =========================================================================
    # History
    # =========================================================================

    def append_history(self, entry: WorkflowHistoryEntry) -> WorkflowHistoryEntry:
        """Append a history entry"""
        doc = entry.model_dump()
        doc["_id"] = entry.history_id

        self._history.insert_one(doc)
        logger.info(
            f"Recorded transition {entry.from_state} -> {entry.to_state}",
            extra={"instance_id": entry.instance_id, "actor_id": entry.performed_by}
        )
        return entry

    def list_history(self, instance_id: str) -> List[WorkflowHistoryEntry]:
        """Get history entries for an instance, most recent first"""
        cursor = self._history.find({"instance_id": instance_id}).sort(
            [("performed_at", DESCENDING), ("sequence", DESCENDING)]
        )

        entries = []
        for doc in cursor:
            doc.pop("_id", None)
            entries.append(WorkflowHistoryEntry.model_validate(doc))
        return entries
