"""MongoDB Client - Connection and Collection Management"""
from typing import Any, Dict, Optional
from pymongo import MongoClient as PyMongoClient
from pymongo.database import Database
from pymongo.collection import Collection
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import ConnectionFailure, PyMongoError

from ..config.settings import settings
from ..utils.logger import get_logger

logger = get_logger(__name__)

# Global client instance
_client: Optional[PyMongoClient] = None
_database: Optional[Database] = None


def get_client() -> PyMongoClient:
    """Get or create MongoDB client"""
    global _client
    if _client is None:
        logger.info("Connecting to MongoDB")
        _client = PyMongoClient(
            settings.mongo_uri,
            serverSelectionTimeoutMS=5000,
            connectTimeoutMS=5000,
            socketTimeoutMS=30000,
        )
        try:
            _client.admin.command("ping")
            logger.info("MongoDB connection successful")
        except ConnectionFailure as e:
            logger.error(f"MongoDB connection failed: {e}")
            raise
    return _client


def get_database() -> Database:
    """Get the application database"""
    global _database
    if _database is None:
        client = get_client()
        _database = client[settings.mongo_db]
        logger.info(f"Using database: {settings.mongo_db}")
    return _database


def get_collection(name: str, db: Optional[Database] = None) -> Collection:
    """Get a collection from the given database (defaults to the application database)"""
    if db is None:
        db = get_database()
    return db[name]


def close_connection() -> None:
    """Close MongoDB connection"""
    global _client, _database
    if _client is not None:
        _client.close()
        _client = None
        _database = None
        logger.info("MongoDB connection closed")


def create_indexes(db: Optional[Database] = None) -> None:
    """Create all required indexes"""
    if db is None:
        db = get_database()
    logger.info("Creating MongoDB indexes...")

    # Workflow catalog
    workflows = db["workflows"]
    workflows.create_index("workflow_id", unique=True)
    workflows.create_index([("is_active", ASCENDING), ("name", ASCENDING)])

    workflow_steps = db["workflow_steps"]
    workflow_steps.create_index("step_id", unique=True)
    workflow_steps.create_index(
        [("workflow_id", ASCENDING), ("step_name", ASCENDING)],
        unique=True
    )
    workflow_steps.create_index([("workflow_id", ASCENDING), ("step_order", ASCENDING)])

    # Permission rules
    workflow_actors = db["workflow_actors"]
    workflow_actors.create_index("actor_id", unique=True)
    workflow_actors.create_index("name")

    workflow_permissions = db["workflow_permissions"]
    workflow_permissions.create_index("permission_id", unique=True)
    workflow_permissions.create_index([
        ("workflow_step_id", ASCENDING),
        ("workflow_actor_id", ASCENDING),
        ("is_active", ASCENDING),
    ])

    # Organization structure
    positions = db["organization_positions"]
    positions.create_index([("user_id", ASCENDING), ("is_active", ASCENDING)])

    teams = db["organization_teams"]
    teams.create_index("team_id", unique=True)

    # Instances
    instances = db["workflow_instances"]
    instances.create_index("instance_id", unique=True)
    instances.create_index([("organization_id", ASCENDING), ("status", ASCENDING)])
    instances.create_index("created_at", background=True)

    history = db["workflow_history"]
    history.create_index("history_id", unique=True)
    history.create_index(
        [("instance_id", ASCENDING), ("performed_at", DESCENDING), ("sequence", DESCENDING)]
    )

    # Audit log
    audit_logs = db["audit_logs"]
    audit_logs.create_index("audit_id", unique=True)
    audit_logs.create_index([("workflow_instance_id", ASCENDING), ("timestamp", DESCENDING)])
    audit_logs.create_index("timestamp", background=True)
    audit_logs.create_index("correlation_id")

    logger.info("MongoDB indexes created successfully")


def health_check() -> Dict[str, Any]:
    """Check MongoDB health"""
    try:
        client = get_client()
        client.admin.command("ping")
        return {
            "status": "healthy",
            "database": settings.mongo_db,
            "connection": "ok"
        }
    except PyMongoError as e:
        logger.error(f"MongoDB health check failed: {e}")
        return {
            "status": "unhealthy",
            "database": settings.mongo_db,
            "connection": "failed"
        }
