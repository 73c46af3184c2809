from sqlalchemy import Column, DateTime, ForeignKey, String

from foghorn.platform.db.base import BaseModel


class ApiKey(BaseModel):
    """
    Long-lived bearer credential for a user.

    Only the SHA-256 of the key is stored; ``key_prefix`` (first 8 characters)
    lets the owner tell keys apart.
    """
    __tablename__ = "api_keys"

    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    name = Column(String(100), nullable=False)
    key_hash = Column(String(64), unique=True, index=True, nullable=False)
    key_prefix = Column(String(16), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    last_used_at = Column(DateTime(timezone=True), nullable=True)
