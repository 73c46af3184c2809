from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from foghorn.features.auth.models.user import User
from foghorn.features.auth.routes.auth import get_current_user
from foghorn.features.teams.schemas.team import (
    TeamCreate,
    TeamMemberCreate,
    TeamMemberResponse,
    TeamResponse,
    TeamUpdate,
)
from foghorn.features.teams.services.team import (
    add_team_member,
    create_team,
    delete_team,
    get_team_members,
    get_teams_for_user,
    remove_team_member,
    require_team_membership,
    update_team,
)
from foghorn.platform.db.session import get_db
from foghorn.platform.response import api_response

router = APIRouter(prefix="/teams", tags=["Teams"])


@router.post("", response_model=dict, status_code=status.HTTP_201_CREATED, summary="Create a team")
async def create_team_route(
    request: TeamCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    team = await create_team(db, request, current_user.id)
    return api_response(
        data=TeamResponse.model_validate(team),
        message="Team created successfully",
        status_code=status.HTTP_201_CREATED,
    )


@router.get("", response_model=dict, summary="List the current user's teams")
async def list_teams(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    teams = await get_teams_for_user(db, current_user.id)
    return api_response(
        data=[TeamResponse.model_validate(team) for team in teams],
        message="Teams retrieved successfully",
    )


@router.get("/{team_id}", response_model=dict, summary="Get a team")
async def get_team(
    team_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    team = await require_team_membership(db, team_id, current_user.id)
    return api_response(data=TeamResponse.model_validate(team), message="Team retrieved successfully")


@router.put("/{team_id}", response_model=dict, summary="Rename a team")
async def update_team_route(
    team_id: str,
    request: TeamUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    team = await update_team(db, team_id, request, current_user.id)
    return api_response(data=TeamResponse.model_validate(team), message="Team updated successfully")


@router.delete("/{team_id}", response_model=dict, summary="Delete a team and its memberships")
async def delete_team_route(
    team_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await delete_team(db, team_id, current_user.id)
    return api_response(data={"success": True}, message="Team deleted successfully")


@router.post(
    "/{team_id}/members",
    response_model=dict,
    status_code=status.HTTP_201_CREATED,
    summary="Add a member to a team",
)
async def add_member(
    team_id: str,
    request: TeamMemberCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    member = await add_team_member(db, team_id, request.user_id, current_user.id)
    return api_response(
        data=TeamMemberResponse.model_validate(member),
        message="Member added successfully",
        status_code=status.HTTP_201_CREATED,
    )


@router.get("/{team_id}/members", response_model=dict, summary="List a team's members")
async def list_members(
    team_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    members = await get_team_members(db, team_id, current_user.id)
    return api_response(
        data=[TeamMemberResponse.model_validate(member) for member in members],
        message="Members retrieved successfully",
    )


@router.delete("/{team_id}/members/{user_id}", response_model=dict, summary="Remove a member from a team")
async def remove_member(
    team_id: str,
    user_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await remove_team_member(db, team_id, user_id, current_user.id)
    return api_response(data={"success": True}, message="Member removed successfully")
