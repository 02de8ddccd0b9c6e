"""Durable record of refresh-token liveness."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import (
    AuthErrorKind,
    AuthFailure,
    InvalidTokenError,
    ResourceNotFoundError,
    ServiceUnavailableError,
)
from app.core.tokens import Clock, epoch_now
from app.models.security import RefreshToken

logger = logging.getLogger(__name__)


def _as_utc(dt: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive values; they were written as UTC.
    if dt is not None and dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


class RevocationLedger:
    """
    Persist issued refresh tokens and their revoked/expiry state.

    Every state change is a conditional ``UPDATE ... WHERE revoked = false``
    so a record can only be revoked once, and two writers racing on the same
    record cannot both observe success.
    """

    def __init__(self, clock: Clock = epoch_now) -> None:
        self._clock = clock

    def now(self) -> datetime:
        return datetime.fromtimestamp(self._clock(), tz=timezone.utc)

    @contextmanager
    def _store(self, db: Session, action: str) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error("Revocation ledger %s failed: %s", action, exc)
            raise ServiceUnavailableError() from exc

    def _live_filter(self, db: Session, token: str, subject_id: int):
        return db.query(RefreshToken).filter(
            RefreshToken.token == token,
            RefreshToken.user_id == subject_id,
            RefreshToken.revoked == False,  # noqa: E712
        )

    def record(self, db: Session, token: str, subject_id: int, expires_at: datetime) -> RefreshToken:
        with self._store(db, "record"):
            record = RefreshToken(
                user_id=subject_id,
                token=token,
                expires_at=expires_at,
                revoked=False,
            )
            db.add(record)
            db.commit()
            db.refresh(record)
            return record

    def is_live(self, db: Session, token: str, subject_id: int) -> bool:
        with self._store(db, "lookup"):
            record = self._live_filter(db, token, subject_id).first()
            if record is None:
                return False
            return _as_utc(record.expires_at) > self.now()

    def revoke(self, db: Session, token: str, subject_id: int) -> None:
        """
        Revoke one refresh token.

        Raises:
            ResourceNotFoundError: If no unrevoked record matches
        """
        with self._store(db, "revoke"):
            affected = self._live_filter(db, token, subject_id).update(
                {RefreshToken.revoked: True, RefreshToken.revoked_at: self.now()},
                synchronize_session=False,
            )
            db.commit()
        if affected == 0:
            raise ResourceNotFoundError("Refresh token")
        logger.info("Revoked refresh token for user %s", subject_id)

    def revoke_all(self, db: Session, subject_id: int) -> int:
        """Revoke every live refresh token of a user; committed before returning."""
        with self._store(db, "revoke_all"):
            affected = (
                db.query(RefreshToken)
                .filter(RefreshToken.user_id == subject_id, RefreshToken.revoked == False)  # noqa: E712
                .update(
                    {RefreshToken.revoked: True, RefreshToken.revoked_at: self.now()},
                    synchronize_session=False,
                )
            )
            db.commit()
        logger.info("Revoked %d refresh tokens for user %s", affected, subject_id)
        return affected

    def rotate(
        self,
        db: Session,
        old_token: str,
        subject_id: int,
        new_token: str,
        new_expires_at: datetime,
    ) -> RefreshToken:
        """
        Revoke ``old_token`` and record ``new_token`` in one transaction.

        Raises:
            InvalidTokenError: If ``old_token`` was already revoked by someone else
        """
        with self._store(db, "rotate"):
            affected = self._live_filter(db, old_token, subject_id).update(
                {RefreshToken.revoked: True, RefreshToken.revoked_at: self.now()},
                synchronize_session=False,
            )
            if affected == 0:
                db.rollback()
                raise InvalidTokenError(
                    AuthFailure(AuthErrorKind.REVOKED, "refresh token already rotated or revoked")
                )

            record = RefreshToken(
                user_id=subject_id,
                token=new_token,
                expires_at=new_expires_at,
                revoked=False,
            )
            db.add(record)
            db.commit()
            db.refresh(record)
            return record
