from sqlalchemy import Column, Integer, String, DateTime, JSON, LargeBinary, Text
from sqlalchemy.sql import func

from sitescan.db.base import Base

PENDING = "pending"
PROCESSING = "processing"
COMPLETED = "completed"
FAILED = "failed"

STATUSES = (PENDING, PROCESSING, COMPLETED, FAILED)

# status -> statuses it may be entered from (never backwards, no retries after failure)
ALLOWED_PREDECESSORS = {
    PROCESSING: (PENDING,),
    COMPLETED: (PROCESSING,),
    FAILED: (PROCESSING,),
}


class Scan(Base):
    __tablename__ = "scans"

    id = Column(String(64), primary_key=True)
    target_url = Column(String, nullable=False)
    domain = Column(String, index=True, nullable=False)

    status = Column(String, nullable=False, default=PENDING, index=True)  # pending|processing|completed|failed
    overall_score = Column(Integer, nullable=True)

    # one payload per analyzer (tagged by "kind")
    security_results = Column(JSON, nullable=True)
    performance_results = Column(JSON, nullable=True)
    accessibility_results = Column(JSON, nullable=True)
    api_results = Column(JSON, nullable=True)
    tech_stack = Column(JSON, nullable=True)
    interactive_results = Column(JSON, nullable=True)

    top_issues = Column(JSON, nullable=True)
    technologies = Column(JSON, nullable=True)
    exposed_endpoints = Column(JSON, nullable=True)
    og_image = Column(String, nullable=True)

    ai_summary = Column(Text, nullable=True)
    ai_recommendations = Column(JSON, nullable=True)

    report_pdf = Column(LargeBinary, nullable=True)
    report_size = Column(Integer, nullable=True)
    report_pages = Column(Integer, nullable=True)

    # internal only, never returned to API callers
    error = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    started_at = Column(DateTime(timezone=True), nullable=True)
    finished_at = Column(DateTime(timezone=True), nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)
