from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from buildseason.persistence.models import (
    PartModel,
    TeamMemberModel,
    TeamModel,
    UserModel,
    VendorModel,
)

logger = logging.getLogger(__name__)

DEMO_MEMBERS = (
    ("admin", "Avery Admin"),
    ("mentor", "Morgan Mentor"),
    ("student", "Sam Student"),
)

DEMO_PARTS = (
    # name, sku, quantity, reorder point, unit price cents
    ("goBILDA 5203 Motor", "5203-2402-0019", 4, 2, 4199),
    ("REV Servo", "REV-41-1097", 1, 3, 2500),
    ("M4 Socket Head Screw (100)", "2800-0004-0010", 20, 0, 550),
)


@dataclass
class SeededTeam:
    team_id: str
    users: dict[str, str] = field(default_factory=dict)
    vendor_id: str = ""
    global_vendor_id: str = ""
    part_ids: list[str] = field(default_factory=list)


def seed_demo_team(session: Session, number: str = "18225", program: str = "ftc") -> SeededTeam:
    """Create a team with one member per role, a vendor, and a few parts."""
    suffix = uuid.uuid4().hex[:8]
    team = TeamModel(name=f"High Voltage {suffix}", number=number, program=program)
    session.add(team)
    session.flush()

    seeded = SeededTeam(team_id=team.id)
    for role, name in DEMO_MEMBERS:
        user = UserModel(id=f"{role}-{suffix}", name=name, email=f"{role}.{suffix}@example.org")
        session.add(user)
        session.flush()
        session.add(TeamMemberModel(team_id=team.id, user_id=user.id, role=role))
        seeded.users[role] = user.id

    vendor = VendorModel(name="goBILDA", website="https://www.gobilda.com", team_id=team.id, is_global=False)
    global_vendor = VendorModel(name=f"REV Robotics {suffix}", website="https://www.revrobotics.com", is_global=True)
    session.add_all([vendor, global_vendor])
    session.flush()
    seeded.vendor_id = vendor.id
    seeded.global_vendor_id = global_vendor.id

    for name, sku, quantity, reorder_point, price in DEMO_PARTS:
        part = PartModel(
            team_id=team.id,
            name=name,
            sku=sku,
            vendor_id=vendor.id,
            quantity=quantity,
            reorder_point=reorder_point,
            unit_price_cents=price,
        )
        session.add(part)
        session.flush()
        seeded.part_ids.append(part.id)

    logger.info("demo team seeded: team_id=%s members=%s", team.id, sorted(seeded.users))
    return seeded
