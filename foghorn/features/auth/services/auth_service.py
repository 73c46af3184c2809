from datetime import datetime, timezone
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from foghorn.features.auth.models.user import User
from foghorn.features.auth.schemas.auth import LoginRequest, SignupRequest, TokenResponse, UserResponse
from foghorn.features.auth.utils.security import create_access_token, hash_password, verify_password


class AuthService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user_by_id(self, user_id: str) -> Optional[User]:
        return await self.db.get(User, user_id)

    async def get_user_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.email == email.lower()))
        return result.scalar_one_or_none()

    def _token_response(self, user: User) -> TokenResponse:
        token = create_access_token({"sub": user.id, "email": user.email})
        return TokenResponse(access_token=token, user=UserResponse.model_validate(user))

    async def register_user(self, request: SignupRequest) -> TokenResponse:
        if await self.get_user_by_email(request.email):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="A user with this email already exists",
            )

        user = User(email=request.email.lower(), password_hash=hash_password(request.password))
        self.db.add(user)
        try:
            await self.db.commit()
            await self.db.refresh(user)
        except IntegrityError:
            await self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="A user with this email already exists",
            )
        return self._token_response(user)

    async def login_user(self, request: LoginRequest) -> TokenResponse:
        user = await self.get_user_by_email(request.email)
        if not user or not verify_password(request.password, user.password_hash):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid email or password",
            )

        user.last_login = datetime.now(timezone.utc)
        await self.db.commit()
        return self._token_response(user)
