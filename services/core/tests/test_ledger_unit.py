"""Unit tests for the dispatch ledger."""

from datetime import datetime

from factories import create_credential, create_user
from redwatch_core.domain.models import LastFetch
from redwatch_core.domain.services.ledger import DispatchLedger


def test_mark_dispatched_creates_row(db_session, crypto):
    user = create_user(db_session)
    credential = create_credential(db_session, user, crypto)
    at = datetime(2024, 5, 1, 12, 0)

    row = DispatchLedger(db_session).mark_dispatched(user.id, credential.id, at=at)

    assert row.dispatch_at == at
    assert row.last_fetched_at is None


def test_marks_share_one_row(db_session, crypto):
    user = create_user(db_session)
    credential = create_credential(db_session, user, crypto)
    ledger = DispatchLedger(db_session)

    ledger.mark_dispatched(user.id, credential.id, at=datetime(2024, 5, 1, 12, 0))
    ledger.mark_fetched(user.id, credential.id, at=datetime(2024, 5, 1, 12, 5))
    ledger.mark_dispatched(user.id, credential.id, at=datetime(2024, 5, 1, 13, 0))

    rows = db_session.query(LastFetch).all()
    assert len(rows) == 1
    assert rows[0].dispatch_at == datetime(2024, 5, 1, 13, 0)
    assert rows[0].last_fetched_at == datetime(2024, 5, 1, 12, 5)


def test_rows_are_per_credential(db_session, crypto):
    user = create_user(db_session)
    first = create_credential(db_session, user, crypto)
    second = create_credential(db_session, user, crypto, reddit_id="t2_alt")
    ledger = DispatchLedger(db_session)

    ledger.mark_fetched(user.id, first.id)
    ledger.mark_fetched(user.id, second.id)

    assert db_session.query(LastFetch).count() == 2
    assert ledger.get(user.id, first.id).last_fetched_at is not None
