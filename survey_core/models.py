from sqlalchemy import Column, String, DateTime, JSON
from datetime import datetime
from .database import Base


class SiteSurvey(Base):
    """
    One surveyed site. The whole infrastructure tree plus its pricing overrides
    lives in `snapshot` (see schemas.SurveySnapshot for the shape).
    """
    __tablename__ = "site_surveys"

    id = Column(String, primary_key=True, index=True)
    name = Column(String, nullable=True)
    snapshot = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
