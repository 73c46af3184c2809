from sqlalchemy import Column, ForeignKey, String, UniqueConstraint

from foghorn.platform.db.base import BaseModel


class Team(BaseModel):
    __tablename__ = "teams"

    name = Column(String(100), nullable=False)


class TeamMember(BaseModel):
    """Membership row; the only thing granting a user access to a team's sites."""
    __tablename__ = "team_members"

    team_id = Column(String, ForeignKey("teams.id", ondelete="CASCADE"), index=True, nullable=False)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)

    __table_args__ = (
        UniqueConstraint("team_id", "user_id", name="uq_team_member"),
    )
