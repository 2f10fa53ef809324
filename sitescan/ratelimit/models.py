from sqlalchemy import Column, Integer, String, DateTime

from sitescan.db.base import Base


class RateLimitWindow(Base):
    __tablename__ = "rate_limit_windows"

    id = Column(Integer, primary_key=True)
    domain = Column(String, unique=True, index=True, nullable=False)

    scan_count = Column(Integer, nullable=False, default=0)
    window_start = Column(DateTime(timezone=True), nullable=False)
    last_scan_at = Column(DateTime(timezone=True), nullable=True)
