"""Append-only store of encrypted contributions"""
import logging
from typing import List, Optional
from sqlalchemy import func, select
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from fhe_royalties.config import settings
from fhe_royalties.errors import ContributionNotFound, DatabaseError, InvalidCiphertext, InvalidContributorKey
from fhe_royalties.models.contribution import Contribution, EncryptedMetrics
from fhe_royalties.models.db import ContributionRecord

logger = logging.getLogger(__name__)

def _to_contribution(record: ContributionRecord) -> Contribution:
    return Contribution(
        id=record.id,
        contributor_key=record.contributor_key,
        metrics=EncryptedMetrics(
            compute_hours=record.compute_hours_ct,
            data_quality=record.data_quality_ct,
            model_impact=record.model_impact_ct
        ),
        timestamp=record.created_at
    )

class ContributionStore:
    """Records encrypted contributions. There is no update or delete."""

    def __init__(self, session: Session, key_size: Optional[int] = None):
        self.session = session
        self.key_size = key_size or settings.CONTRIBUTOR_KEY_SIZE

    def _validate(self, metrics: EncryptedMetrics, contributor_key: bytes) -> None:
        if not isinstance(contributor_key, (bytes, bytearray)) or len(contributor_key) != self.key_size:
            raise InvalidContributorKey(f"Contributor key must be {self.key_size} bytes")
        for ciphertext in metrics.as_list():
            if not isinstance(ciphertext, (bytes, bytearray)) or not ciphertext:
                raise InvalidCiphertext("Metric ciphertexts must be non-empty bytes")

    def submit(self, metrics: EncryptedMetrics, contributor_key: bytes) -> Contribution:
        """Store a contribution verbatim and assign the next id"""
        self._validate(metrics, contributor_key)

        record = ContributionRecord(
            contributor_key=bytes(contributor_key),
            compute_hours_ct=bytes(metrics.compute_hours),
            data_quality_ct=bytes(metrics.data_quality),
            model_impact_ct=bytes(metrics.model_impact)
        )
        try:
            self.session.add(record)
            self.session.flush()
        except SQLAlchemyError as e:
            logger.error(f"Database error storing contribution: {e}")
            raise DatabaseError(f"Failed to store contribution: {e}") from e

        logger.info(f"Recorded contribution {record.id}")
        return _to_contribution(record)

    def get(self, contribution_id: int) -> Contribution:
        record = self.session.get(ContributionRecord, contribution_id)
        if record is None:
            raise ContributionNotFound(contribution_id)
        return _to_contribution(record)

    def list(self, offset: int = 0, limit: int = 100) -> List[Contribution]:
        """Contributions in submission order"""
        records = self.session.execute(
            select(ContributionRecord).order_by(ContributionRecord.id).offset(offset).limit(limit)
        ).scalars().all()
        return [_to_contribution(r) for r in records]

    def ids(self) -> List[int]:
        return list(self.session.execute(
            select(ContributionRecord.id).order_by(ContributionRecord.id)
        ).scalars())

    def count(self) -> int:
        return self.session.execute(select(func.count(ContributionRecord.id))).scalar_one()
