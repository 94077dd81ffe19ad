"""Organization Repository - Positions and team parentage"""
from typing import List, Optional
from pymongo.collection import Collection
from pymongo.database import Database

from .mongo_client import get_collection
from ..domain.models import ActorPosition, OrganizationTeam


class OrganizationRepository:
    """Read access to the organizational hierarchy"""

    def __init__(self, db: Optional[Database] = None):
        self._positions: Collection = get_collection("organization_positions", db)
        self._teams: Collection = get_collection("organization_teams", db)

    def get_active_positions(self, user_id: str) -> List[ActorPosition]:
        """Get a user's active positions (a user may hold several)"""
        positions = []
        for doc in self._positions.find({"user_id": user_id, "is_active": True}):
            doc.pop("_id", None)
            positions.append(ActorPosition.model_validate(doc))
        return positions

    def get_team(self, team_id: str) -> Optional[OrganizationTeam]:
        """Get team by ID"""
        doc = self._teams.find_one({"team_id": team_id})
        if doc:
            doc.pop("_id", None)
            return OrganizationTeam.model_validate(doc)
        return None

    def get_team_department_id(self, team_id: str) -> Optional[str]:
        """Get the parent department of a team, None if the team is unknown"""
        team = self.get_team(team_id)
        return team.department_id if team else None
