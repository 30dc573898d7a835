"""
Terminal directory and terminal access models.

Terminal rows are maintained by the external terminal directory; the
core only reads terminal_id and renewal_days. A TerminalAccess row is a
driver's card for one terminal, valid renewal_days from carded_on.
"""

from sqlalchemy import Column, Integer, String, Boolean, Date, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from permitbook.app.db.session import Base


class Terminal(Base):
    __tablename__ = "terminals"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    terminal_name = Column(String(255), nullable=False)
    city = Column(String(100), nullable=True)
    state = Column(String(2), nullable=True)
    renewal_days = Column(Integer, nullable=False, default=365)
    active = Column(Boolean, default=True, nullable=False)

    def __repr__(self):
        return f"<Terminal(id={self.id}, name='{self.terminal_name}', renewal_days={self.renewal_days})>"


class TerminalAccess(Base):
    """A driver's access grant for one terminal. One grant per terminal."""
    __tablename__ = "terminal_access"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    driver_id = Column(Integer, nullable=False, index=True)
    company_id = Column(Integer, nullable=False, index=True)
    terminal_id = Column(Integer, ForeignKey("terminals.id"), nullable=False, index=True)

    carded_on = Column(Date, nullable=False)
    expires_on = Column(Date, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("driver_id", "company_id", "terminal_id"),
    )

    def __repr__(self):
        return f"<TerminalAccess(driver_id={self.driver_id}, terminal_id={self.terminal_id}, expires_on={self.expires_on})>"
