# Overview: Service-layer operations for maintenance; log retention and session cleanup.

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from ..extensions import db
from ..ledger.errors import ValidationError
from ..models import SessionToken
from ..repositories import Repository, get_repository
from stockroom.time_utils import utcnow

logger = logging.getLogger(__name__)

# Revoked or expired tokens are kept this long for auditing before deletion.
SESSION_RETENTION = timedelta(days=30)


def purge_transactions_older_than(
    days: int,
    *,
    repository: Repository | None = None,
    now: datetime | None = None,
) -> int:
    """
    Delete transactions whose timestamp is strictly before now - days.

    Product stock is not touched. Returns the number of records removed.
    """
    if isinstance(days, bool) or not isinstance(days, int):
        raise ValidationError("days must be an integer")
    if days < 1:
        raise ValidationError("days must be at least 1")

    repo = repository or get_repository()
    try:
        cutoff = (now or utcnow()) - timedelta(days=days)
    except OverflowError:
        # Earlier than any representable timestamp; nothing can be that old.
        cutoff = datetime.min
    deleted = repo.purge_transactions_before(cutoff)
    logger.info("Purged %s transactions older than %s days (cutoff %s)", deleted, days, cutoff.isoformat())
    return deleted


def cleanup_expired_sessions(*, now: datetime | None = None) -> int:
    """
    Delete expired and revoked sessions older than SESSION_RETENTION.

    Returns count of sessions deleted.
    """
    now = now or utcnow()
    cutoff = now - SESSION_RETENTION

    deleted = db.session.query(SessionToken).filter(
        db.or_(
            SessionToken.expires_at < now,
            SessionToken.is_revoked.is_(True),
        ),
        SessionToken.created_at < cutoff,
    ).delete(synchronize_session=False)

    db.session.commit()
    logger.info("Removed %s stale session tokens", deleted)
    return deleted
