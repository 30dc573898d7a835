"""
Company membership model.

Links an externally managed user account to a company with a role.
The tenant check for every request is a lookup in this table.
"""

from sqlalchemy import Column, Integer, DateTime, Enum, UniqueConstraint
from sqlalchemy.sql import func
from permitbook.app.db.session import Base
from permitbook.app.models.enums import MemberRole


class Membership(Base):
    """A user's role within one company."""
    __tablename__ = "memberships"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, index=True)
    company_id = Column(Integer, nullable=False, index=True)
    role = Column(Enum(MemberRole), default=MemberRole.DRIVER, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "company_id"),
    )

    def __repr__(self):
        return f"<Membership(user_id={self.user_id}, company_id={self.company_id}, role='{self.role.value}')>"
