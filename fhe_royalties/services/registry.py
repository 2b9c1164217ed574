"""Correlation of oracle request ids with the operation they resolve"""
import logging
from datetime import datetime
from typing import List, Optional
from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from fhe_royalties.errors import DatabaseError, DuplicateRequestId, UnknownRequest
from fhe_royalties.models.db import PendingRequestRecord
from fhe_royalties.models.oracle import PendingRequest, RequestKind

logger = logging.getLogger(__name__)

def _to_pending(record: PendingRequestRecord) -> PendingRequest:
    return PendingRequest(
        request_id=record.request_id,
        kind=RequestKind(record.kind),
        context=record.context,
        contributor_key=record.contributor_key,
        created_at=record.created_at,
        expires_at=record.expires_at
    )

class CorrelationRegistry:
    """
    Single-consumption map from request id to pending operation.

    Consuming an entry deletes it, so a replayed or duplicated callback for
    the same request id always fails with UnknownRequest.
    """

    def __init__(self, session: Session):
        self.session = session

    def register(self, request_id: str, kind: RequestKind, context: str,
                 contributor_key: bytes, expires_at: datetime) -> PendingRequest:
        if self.session.get(PendingRequestRecord, request_id) is not None:
            raise DuplicateRequestId(request_id)

        record = PendingRequestRecord(
            request_id=request_id,
            kind=kind.value,
            context=context,
            contributor_key=contributor_key,
            expires_at=expires_at
        )
        try:
            self.session.add(record)
            self.session.flush()
        except IntegrityError as e:
            raise DuplicateRequestId(request_id) from e
        except SQLAlchemyError as e:
            logger.error(f"Database error registering request {request_id}: {e}")
            raise DatabaseError(f"Failed to register request {request_id}: {e}") from e

        return _to_pending(record)

    def peek(self, request_id: str) -> Optional[PendingRequest]:
        record = self.session.get(PendingRequestRecord, request_id)
        return _to_pending(record) if record is not None else None

    def consume(self, request_id: str) -> PendingRequest:
        """Remove and return the entry for request_id"""
        pending = self.peek(request_id)
        if pending is None:
            raise UnknownRequest(request_id)

        result = self.session.execute(
            delete(PendingRequestRecord).where(PendingRequestRecord.request_id == request_id)
        )
        # Lost a race with another consumer of the same id
        if result.rowcount != 1:
            raise UnknownRequest(request_id)
        return pending

    def has_pending(self, kind: RequestKind, context: str) -> bool:
        return self.session.execute(
            select(func.count(PendingRequestRecord.request_id))
            .where(PendingRequestRecord.kind == kind.value, PendingRequestRecord.context == context)
        ).scalar_one() > 0

    def pending_for(self, kind: RequestKind, context: str) -> List[PendingRequest]:
        records = self.session.execute(
            select(PendingRequestRecord)
            .where(PendingRequestRecord.kind == kind.value, PendingRequestRecord.context == context)
            .order_by(PendingRequestRecord.created_at)
        ).scalars().all()
        return [_to_pending(r) for r in records]

    def expire(self, now: datetime) -> List[PendingRequest]:
        """Remove every entry whose deadline has passed"""
        records = self.session.execute(
            select(PendingRequestRecord).where(PendingRequestRecord.expires_at <= now)
        ).scalars().all()
        expired = [_to_pending(r) for r in records]
        if expired:
            self.session.execute(
                delete(PendingRequestRecord).where(
                    PendingRequestRecord.request_id.in_([p.request_id for p in expired])
                )
            )
        return expired

    def count(self) -> int:
        return self.session.execute(select(func.count(PendingRequestRecord.request_id))).scalar_one()
