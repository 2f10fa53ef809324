from sitescan.db.session import engine
from sitescan.db.base import Base

# Import models so SQLAlchemy registers them
from sitescan.scans.models import Scan  # noqa
from sitescan.ratelimit.models import RateLimitWindow  # noqa


def init_db():
    Base.metadata.create_all(bind=engine)
