"""
API key Service

Issues, lists and revokes API keys, and authenticates bearer tokens that are
API keys rather than JWTs.
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from foghorn.features.api_keys.models.api_key import ApiKey
from foghorn.features.api_keys.schemas.api_key import ApiKeyCreate
from foghorn.features.api_keys.utils.keys import generate_api_key, hash_api_key

logger = logging.getLogger(__name__)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes; they are stored as UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def create_api_key(db: AsyncSession, key_data: ApiKeyCreate, user_id: str) -> Tuple[ApiKey, str]:
    """
    Create a key for ``user_id``.

    Returns:
        The stored key row and the plain key, which is not kept anywhere
    """
    generated = generate_api_key()
    api_key = ApiKey(
        user_id=user_id,
        name=key_data.name,
        key_hash=generated.key_hash,
        key_prefix=generated.key_prefix,
        expires_at=_as_utc(key_data.expires_at),
    )
    db.add(api_key)
    await db.commit()
    await db.refresh(api_key)

    logger.info("API key created", extra={"user_id": user_id, "key_prefix": generated.key_prefix})
    return api_key, generated.key


async def list_api_keys(db: AsyncSession, user_id: str) -> List[ApiKey]:
    result = await db.execute(
        select(ApiKey).where(ApiKey.user_id == user_id).order_by(ApiKey.created_at, ApiKey.id)
    )
    return list(result.scalars().all())


async def delete_api_key(db: AsyncSession, key_id: str, user_id: str) -> bool:
    api_key = await db.get(ApiKey, key_id)
    if not api_key or api_key.user_id != user_id:
        logger.warning("API key not found on delete", extra={"user_id": user_id, "key_id": key_id})
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="API key not found.")

    await db.delete(api_key)
    await db.commit()
    logger.info("API key deleted", extra={"user_id": user_id, "key_id": key_id})
    return True


async def authenticate_api_key(db: AsyncSession, token: str) -> str:
    """
    Resolve an API key to its owner's user id and stamp ``last_used_at``.

    Raises:
        HTTPException: 401 if the key is unknown or expired
    """
    result = await db.execute(select(ApiKey).where(ApiKey.key_hash == hash_api_key(token)))
    api_key = result.scalar_one_or_none()
    if api_key is None:
        raise _unauthorized("Invalid API key.")

    now = datetime.now(timezone.utc)
    expires_at = _as_utc(api_key.expires_at)
    if expires_at is not None and expires_at < now:
        raise _unauthorized("API key has expired.")

    api_key.last_used_at = now
    await db.commit()
    return api_key.user_id
