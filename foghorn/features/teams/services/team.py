from typing import List

from fastapi import HTTPException, status
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from foghorn.features.auth.models.user import User
from foghorn.features.teams.models.team import Team, TeamMember
from foghorn.features.teams.schemas.team import TeamCreate, TeamUpdate


async def require_team_membership(db: AsyncSession, team_id: str, user_id: str) -> Team:
    """
    Return the team if ``user_id`` belongs to it.

    Raises:
        HTTPException: 404 if the team does not exist, 403 if the user is not a member
    """
    team = await db.get(Team, team_id)
    if not team:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Team not found.")

    result = await db.execute(
        select(TeamMember.id).where(TeamMember.team_id == team_id, TeamMember.user_id == user_id)
    )
    if result.first() is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You are not a member of this team.",
        )
    return team


async def get_teams_for_user(db: AsyncSession, user_id: str) -> List[Team]:
    result = await db.execute(
        select(Team)
        .join(TeamMember, TeamMember.team_id == Team.id)
        .where(TeamMember.user_id == user_id)
        .order_by(Team.created_at)
    )
    return list(result.scalars().all())


async def create_team(db: AsyncSession, team_data: TeamCreate, user_id: str) -> Team:
    """Create a team; the creator becomes its first member."""
    team = Team(name=team_data.name)
    db.add(team)
    await db.flush()
    db.add(TeamMember(team_id=team.id, user_id=user_id))
    await db.commit()
    await db.refresh(team)
    return team


async def add_team_member(db: AsyncSession, team_id: str, user_id: str, current_user_id: str) -> TeamMember:
    await require_team_membership(db, team_id, current_user_id)

    if not await db.get(User, user_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found.")

    existing = await db.execute(
        select(TeamMember).where(TeamMember.team_id == team_id, TeamMember.user_id == user_id)
    )
    if existing.scalar_one_or_none():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User is already a member of this team.",
        )

    member = TeamMember(team_id=team_id, user_id=user_id)
    db.add(member)
    await db.commit()
    await db.refresh(member)
    return member


async def update_team(db: AsyncSession, team_id: str, team_data: TeamUpdate, user_id: str) -> Team:
    team = await require_team_membership(db, team_id, user_id)
    team.name = team_data.name
    await db.commit()
    await db.refresh(team)
    return team


async def delete_team(db: AsyncSession, team_id: str, user_id: str) -> bool:
    """Delete a team together with all of its memberships."""
    team = await require_team_membership(db, team_id, user_id)
    await db.execute(delete(TeamMember).where(TeamMember.team_id == team_id))
    await db.delete(team)
    await db.commit()
    return True


async def get_team_members(db: AsyncSession, team_id: str, user_id: str) -> List[TeamMember]:
    await require_team_membership(db, team_id, user_id)
    result = await db.execute(
        select(TeamMember).where(TeamMember.team_id == team_id).order_by(TeamMember.created_at, TeamMember.id)
    )
    return list(result.scalars().all())


async def remove_team_member(db: AsyncSession, team_id: str, member_user_id: str, current_user_id: str) -> bool:
    await require_team_membership(db, team_id, current_user_id)

    result = await db.execute(
        select(TeamMember).where(TeamMember.team_id == team_id, TeamMember.user_id == member_user_id)
    )
    member = result.scalar_one_or_none()
    if not member:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Member not found.")

    await db.delete(member)
    await db.commit()
    return True
