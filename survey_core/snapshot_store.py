"""
Persisted survey snapshots.

The UI batches edits (settings.SAVE_DEBOUNCE_MS) and then writes the full snapshot.
There is no version check: the last save wins, and a concurrent editor's save
silently replaces an earlier one.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from . import models
from .schemas import SurveySnapshot

logger = logging.getLogger(__name__)


class SnapshotStore:

    def __init__(self, db: Session):
        self.db = db

    def _get_row(self, survey_id: str) -> Optional[models.SiteSurvey]:
        return self.db.query(models.SiteSurvey).filter(
            models.SiteSurvey.id == survey_id
        ).first()

    def load(self, survey_id: str) -> Optional[SurveySnapshot]:
        """Stored snapshot for a survey, or None if nothing was saved yet."""
        row = self._get_row(survey_id)
        if row is None:
            return None
        return SurveySnapshot.model_validate(row.snapshot or {})

    def save(self, survey_id: str, snapshot: SurveySnapshot,
             name: Optional[str] = None) -> models.SiteSurvey:
        """Writes the full snapshot, replacing whatever was stored (last write wins)."""
        payload = snapshot.model_dump(mode="json", by_alias=True)

        row = self._get_row(survey_id)
        if row is None:
            row = models.SiteSurvey(id=survey_id, name=name)
            self.db.add(row)
        elif name:
            row.name = name

        row.snapshot = payload
        row.updated_at = datetime.utcnow()
        self.db.commit()
        logger.info("Saved snapshot for survey %s (%d buildings)",
                    survey_id, len(snapshot.buildings))
        return row
