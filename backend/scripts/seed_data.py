"""
Seed Data Script - Creates a sample purchase approval workflow for testing
Run: python -m scripts.seed_data
"""
from pymongo.database import Database

from workflow_gate.repositories.mongo_client import get_database, create_indexes
from workflow_gate.domain.enums import GroupType, PermissionType
from workflow_gate.utils.idgen import generate_workflow_id, generate_step_id, generate_id
from workflow_gate.utils.time import utc_now

DEPARTMENT_FINANCE = "dept-finance"
DEPARTMENT_LEGAL = "dept-legal"
TEAM_PAYABLES = "team-payables"
DESIGNATION_MANAGER = "desig-manager"


def create_sample_workflow(db: Database) -> None:
    """Create the Purchase Approval workflow with its approver rules"""
    workflows_col = db["workflows"]

    # Check if already seeded
    if workflows_col.count_documents({}) > 0:
        print("Database already has data. Skipping seed.")
        return

    now = utc_now()
    workflow_id = generate_workflow_id()

    workflows_col.insert_one({
        "_id": workflow_id,
        "workflow_id": workflow_id,
        "name": "Purchase Approval",
        "description": "Purchase requests reviewed by finance before approval.",
        "is_active": True,
        "created_at": now,
        "updated_at": now
    })
    print(f"Created workflow: {workflow_id}")

    step_ids = {}
    for order, step_name in enumerate(["draft", "review", "approved"], start=1):
        step_id = generate_step_id()
        step_ids[step_name] = step_id
        db["workflow_steps"].insert_one({
            "_id": step_id,
            "step_id": step_id,
            "workflow_id": workflow_id,
            "step_name": step_name,
            "step_order": order,
            "is_active": True
        })
    print(f"Created steps: {', '.join(step_ids)}")

    actor_id = generate_id("ACT")
    db["workflow_actors"].insert_one({"_id": actor_id, "actor_id": actor_id, "name": "approver"})

    permissions = [
        # Finance managers may move requests into review during business hours
        {
            "workflow_step_id": step_ids["review"],
            "group_type": GroupType.DEPARTMENT.value,
            "group_id": DEPARTMENT_FINANCE,
            "designation_id": DESIGNATION_MANAGER,
            "permission_type": PermissionType.REQUIRED.value,
            "conditions": {
                "min_job_level": 3,
                "time_constraint": {"business_hours_only": True}
            }
        },
        # Finance may approve up to the amount limit
        {
            "workflow_step_id": step_ids["approved"],
            "group_type": GroupType.DEPARTMENT.value,
            "group_id": DEPARTMENT_FINANCE,
            "designation_id": None,
            "permission_type": PermissionType.REQUIRED.value,
            "conditions": {"min_job_level": 3, "workflow_amount_limit": 1000}
        },
        # Legal never approves purchases
        {
            "workflow_step_id": step_ids["approved"],
            "group_type": GroupType.DEPARTMENT.value,
            "group_id": DEPARTMENT_LEGAL,
            "designation_id": None,
            "permission_type": PermissionType.FORBIDDEN.value,
            "conditions": {}
        },
    ]
    for rule in permissions:
        permission_id = generate_id("PERM")
        db["workflow_permissions"].insert_one({
            "_id": permission_id,
            "permission_id": permission_id,
            "workflow_actor_id": actor_id,
            "is_active": True,
            **rule
        })
    print(f"Created {len(permissions)} permission rules for actor 'approver'")

    db["organization_teams"].insert_one({
        "_id": TEAM_PAYABLES,
        "team_id": TEAM_PAYABLES,
        "department_id": DEPARTMENT_FINANCE,
        "name": "Payables"
    })

    positions = [
        {"user_id": "alice", "group_type": GroupType.DEPARTMENT.value, "group_id": DEPARTMENT_FINANCE,
         "designation_id": DESIGNATION_MANAGER, "job_level": 5},
        {"user_id": "bob", "group_type": GroupType.TEAM.value, "group_id": TEAM_PAYABLES,
         "designation_id": None, "job_level": 3},
        {"user_id": "carol", "group_type": GroupType.DEPARTMENT.value, "group_id": DEPARTMENT_LEGAL,
         "designation_id": None, "job_level": 7},
    ]
    for position in positions:
        position_id = generate_id("POS")
        db["organization_positions"].insert_one({
            "_id": position_id,
            "position_id": position_id,
            "is_active": True,
            **position
        })
    print(f"Created {len(positions)} positions (alice, bob, carol)")

    print("\n[OK] Seed data created successfully!")


def main():
    print("=== Seeding database ===")
    print("-" * 40)

    db = get_database()

    # Create indexes first
    create_indexes(db)

    create_sample_workflow(db)

    print("-" * 40)
    print("Done!")


if __name__ == "__main__":
    main()
