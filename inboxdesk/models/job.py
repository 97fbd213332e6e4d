"""
Background job records.

Written by the worker processes (campaigns, imports, reports); the API only
reads them.
"""

import enum

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Index, Integer, String, Text

from inboxdesk.database import Base, utcnow


class JobStatus(str, enum.Enum):
    queued = "queued"
    running = "running"
    completed = "completed"
    failed = "failed"


class JobType(str, enum.Enum):
    campaign = "campaign"
    contact_import = "contact_import"
    report = "report"


class Job(Base):
    __tablename__ = "jobs"

    id = Column(Integer, primary_key=True, index=True)
    account_id = Column(Integer, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False)
    job_type = Column(String(30), nullable=False)
    status = Column(String(20), nullable=False, default=JobStatus.queued.value)
    progress = Column(Integer, nullable=False, default=0)  # 0-100
    result = Column(JSON, nullable=True)
    error = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    started_at = Column(DateTime, nullable=True)
    finished_at = Column(DateTime, nullable=True)

    __table_args__ = (Index("idx_job_account_status", "account_id", "status"),)
