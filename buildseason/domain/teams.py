from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from buildseason.core.errors import NotFoundError
from buildseason.core.security import TEAM_ROLES, TeamContext
from buildseason.persistence.models import TeamMemberModel, TeamModel


def resolve_team_context(session: Session, team_id: str, caller_id: str) -> TeamContext:
    # Non-members get the same answer as a missing team.
    team = session.get(TeamModel, team_id)
    if team is None:
        raise NotFoundError("Team not found")

    role = session.scalar(
        select(TeamMemberModel.role)
        .where(TeamMemberModel.team_id == team_id)
        .where(TeamMemberModel.user_id == caller_id)
    )
    if role is None or role not in TEAM_ROLES:
        raise NotFoundError("Team not found")
    return TeamContext(team_id=team_id, caller_id=caller_id, caller_role=role)
