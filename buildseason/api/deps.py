from __future__ import annotations

from fastapi import Depends
from sqlalchemy.orm import Session

from buildseason.core.security import Caller, TeamContext, get_caller
from buildseason.domain.teams import resolve_team_context
from buildseason.persistence.db import get_session


def get_team_context(
    team_id: str,
    caller: Caller = Depends(get_caller),
    session: Session = Depends(get_session),
) -> TeamContext:
    return resolve_team_context(session, team_id, caller.user_id)
