"""
RefreshToken model: one row per issued refresh token, keyed by its JTI, so
refresh tokens can be revoked and rotated server-side.
Fields:
- jti (primary key, immutable)
- user_id (String(36)) - FK to users.id, cascades on user delete
- created_at, expires_at
- revoked (bool, only ever goes False -> True), revoked_at
"""
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from models.base_model import Base


class RefreshToken(Base):
    __tablename__ = "refresh_tokens"

    jti = Column(String(64), primary_key=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    revoked = Column(Boolean, default=False, nullable=False)
    revoked_at = Column(DateTime(timezone=True), nullable=True)

    user = relationship("User", back_populates="refresh_tokens")

    def __repr__(self):
        return f"<RefreshToken jti={self.jti} revoked={self.revoked}>"
