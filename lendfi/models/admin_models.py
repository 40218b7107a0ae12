"""
Audit trail of administrative actions.
"""
from sqlalchemy import Column, Integer, String, JSON, DateTime, Index
from lendfi.database import Base
from lendfi.utils.dates import utcnow


class AdminLog(Base):
    """One row per admin mutation: KYC review, loan status force, deactivation, export."""
    __tablename__ = "admin_logs"

    id = Column(Integer, primary_key=True, index=True)
    admin_id = Column(Integer, nullable=False, index=True)
    action = Column(String(100), nullable=False, index=True)
    target_type = Column(String(32), nullable=True)
    target_id = Column(Integer, nullable=True)
    details = Column(JSON, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        Index('idx_admin_logs_admin_action', 'admin_id', 'action'),
        Index('idx_admin_logs_created_at', 'created_at'),
    )

    def __repr__(self):
        return f"<AdminLog id={self.id} action={self.action} admin={self.admin_id}>"

