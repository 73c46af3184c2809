from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from foghorn.features.api_keys.services.api_key_service import authenticate_api_key
from foghorn.features.api_keys.utils.keys import is_api_key
from foghorn.features.auth.models.user import User
from foghorn.features.auth.schemas.auth import LoginRequest, SignupRequest
from foghorn.features.auth.services.auth_service import AuthService
from foghorn.features.auth.utils.security import decode_access_token
from foghorn.platform.db.session import get_db
from foghorn.platform.response import api_response

router = APIRouter(prefix="/auth", tags=["Authentication"])
security = HTTPBearer()


@router.post(
    "/signup",
    response_model=dict,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
)
async def signup(request: SignupRequest, db: AsyncSession = Depends(get_db)):
    token_response = await AuthService(db).register_user(request)
    return api_response(
        data=token_response,
        message="User registered successfully",
        status_code=status.HTTP_201_CREATED,
    )


@router.post(
    "/login",
    response_model=dict,
    status_code=status.HTTP_200_OK,
    summary="Login user",
)
async def login(request: LoginRequest, db: AsyncSession = Depends(get_db)):
    token_response = await AuthService(db).login_user(request)
    return api_response(data=token_response, message="Login successful")


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Dependency to get the current authenticated user.

    The bearer token is either a JWT from login or an API key (``fh_`` prefix).
    """
    token = credentials.credentials

    if is_api_key(token):
        user_id = await authenticate_api_key(db, token)
    else:
        try:
            payload = decode_access_token(token)
        except ValueError as e:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=str(e),
                headers={"WWW-Authenticate": "Bearer"},
            )
        user_id = payload.get("sub")

    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = await AuthService(db).get_user_by_id(user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user
