"""Audit Repository - Data access for audit log entries"""
from typing import List, Optional
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo import DESCENDING

from .mongo_client import get_collection
from ..domain.models import AuditLogEntry
from ..domain.enums import AuditEventType
from ..utils.logger import get_logger

logger = get_logger(__name__)


class AuditRepository:
    """Repository for audit log operations (append-only)"""

    def __init__(self, db: Optional[Database] = None):
        self._audit_logs: Collection = get_collection("audit_logs", db)

    def create_entry(self, entry: AuditLogEntry) -> AuditLogEntry:
        """Create an audit entry (append-only)"""
        doc = entry.model_dump()
        doc["_id"] = entry.audit_id

        self._audit_logs.insert_one(doc)
        logger.info(
            f"Created audit entry: {entry.event_type.value}",
            extra={
                "instance_id": entry.workflow_instance_id,
                "audit_id": entry.audit_id,
                "actor_id": entry.user_id,
                "result": entry.result.value
            }
        )
        return entry

    def get_entries_for_instance(
        self,
        instance_id: str,
        event_types: Optional[List[AuditEventType]] = None,
        skip: int = 0,
        limit: int = 100
    ) -> List[AuditLogEntry]:
        """Get audit entries for an instance, most recent first"""
        query = {"workflow_instance_id": instance_id}
        if event_types:
            query["event_type"] = {"$in": [et.value for et in event_types]}

        cursor = self._audit_logs.find(query).sort("timestamp", DESCENDING).skip(skip).limit(limit)

        entries = []
        for doc in cursor:
            doc.pop("_id", None)
            entries.append(AuditLogEntry.model_validate(doc))
        return entries

    def count_entries_for_instance(self, instance_id: str) -> int:
        """Count audit entries for an instance"""
        return self._audit_logs.count_documents({"workflow_instance_id": instance_id})
