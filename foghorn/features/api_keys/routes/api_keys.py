from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from foghorn.features.api_keys.schemas.api_key import ApiKeyCreate, ApiKeyCreatedResponse, ApiKeyResponse
from foghorn.features.api_keys.services.api_key_service import create_api_key, delete_api_key, list_api_keys
from foghorn.features.auth.models.user import User
from foghorn.features.auth.routes.auth import get_current_user
from foghorn.platform.db.session import get_db
from foghorn.platform.response import api_response

router = APIRouter(prefix="/api-keys", tags=["API Keys"])


@router.post(
    "",
    response_model=dict,
    status_code=status.HTTP_201_CREATED,
    summary="Create an API key",
    description="The full key is only returned in this response; store it safely.",
)
async def create_api_key_route(
    request: ApiKeyCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    api_key, plain_key = await create_api_key(db, request, current_user.id)
    response = ApiKeyCreatedResponse(**ApiKeyResponse.model_validate(api_key).model_dump(), key=plain_key)
    return api_response(
        data=response,
        message="API key created successfully",
        status_code=status.HTTP_201_CREATED,
    )


@router.get("", response_model=dict, summary="List the current user's API keys")
async def list_api_keys_route(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    keys = await list_api_keys(db, current_user.id)
    return api_response(
        data=[ApiKeyResponse.model_validate(api_key) for api_key in keys],
        message="API keys retrieved successfully",
    )


@router.delete("/{key_id}", response_model=dict, summary="Revoke an API key")
async def delete_api_key_route(
    key_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await delete_api_key(db, key_id, current_user.id)
    return api_response(data={"success": True}, message="API key deleted successfully")
