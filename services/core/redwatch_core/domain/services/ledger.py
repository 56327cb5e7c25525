"""Dispatch ledger (LastFetch) bookkeeping.

Records when the scheduler last fanned out for a credential and when the
enrichment worker last stored a mention for it. Nothing reads these rows to
make decisions; they exist for staleness dashboards and debugging.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from redwatch_core.domain.models import LastFetch, utcnow


class DispatchLedger:
    """Upserts LastFetch rows keyed by (user, credential)."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: int, credential_id: int) -> Optional[LastFetch]:
        return (
            self.db.query(LastFetch)
            .filter(
                LastFetch.user_id == user_id,
                LastFetch.reddit_credential_id == credential_id,
            )
            .first()
        )

    def mark_dispatched(
        self, user_id: int, credential_id: int, at: Optional[datetime] = None
    ) -> LastFetch:
        return self._upsert(user_id, credential_id, dispatch_at=at or utcnow())

    def mark_fetched(
        self, user_id: int, credential_id: int, at: Optional[datetime] = None
    ) -> LastFetch:
        return self._upsert(user_id, credential_id, last_fetched_at=at or utcnow())

    def _upsert(self, user_id: int, credential_id: int, **values) -> LastFetch:
        row = self.get(user_id, credential_id)
        if row is None:
            row = LastFetch(user_id=user_id, reddit_credential_id=credential_id, **values)
            self.db.add(row)
        else:
            for key, value in values.items():
                setattr(row, key, value)

        try:
            self.db.commit()
        except IntegrityError:
            # Lost an insert race; the row exists now
            self.db.rollback()
            row = self.get(user_id, credential_id)
            if row is None:
                raise
            for key, value in values.items():
                setattr(row, key, value)
            self.db.commit()

        return row
