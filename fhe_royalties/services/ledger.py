"""Distribution ledger and reward pool"""
import logging
from typing import Dict, Optional
from sqlalchemy import func, select, update
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from fhe_royalties.codec import MAX_WORD
from fhe_royalties.errors import AlreadyClaimed, AlreadyDistributed, DatabaseError, InvalidDeposit, NoDistribution
from fhe_royalties.models.contribution import Distribution, DistributionStatus
from fhe_royalties.models.db import DistributionRecord, RevealedRoyaltyRecord, RewardPoolRecord, utcnow
from fhe_royalties.models.royalty import RevealedRoyalty

logger = logging.getLogger(__name__)

def _to_distribution(record: DistributionRecord) -> Distribution:
    return Distribution(
        contributor_key=record.contributor_key,
        contribution_id=record.contribution_id,
        share=record.share_ct,
        payment_amount=record.payment_ct,
        claimed=record.claimed_ct,
        status=DistributionStatus(record.status),
        created_at=record.created_at,
        claimed_at=record.claimed_at
    )

class DistributionLedger:
    """
    Per-contributor distributions and the plaintext audit cache.

    Single source of truth for whether a contributor has been paid.
    """

    def __init__(self, session: Session):
        self.session = session

    def _record(self, contributor_key: bytes) -> Optional[DistributionRecord]:
        return self.session.execute(
            select(DistributionRecord).where(DistributionRecord.contributor_key == contributor_key)
        ).scalar_one_or_none()

    def get(self, contributor_key: bytes) -> Optional[Distribution]:
        record = self._record(contributor_key)
        return _to_distribution(record) if record is not None else None

    def exists(self, contributor_key: bytes) -> bool:
        return self._record(contributor_key) is not None

    def create(self, contributor_key: bytes, contribution_id: int, share_ct: bytes,
               payment_ct: bytes, claimed_ct: bytes) -> Distribution:
        """Create the one distribution a contributor may ever have"""
        if self.exists(contributor_key):
            raise AlreadyDistributed(contributor_key)

        record = DistributionRecord(
            contributor_key=contributor_key,
            contribution_id=contribution_id,
            share_ct=share_ct,
            payment_ct=payment_ct,
            claimed_ct=claimed_ct,
            status=DistributionStatus.CREATED.value
        )
        try:
            self.session.add(record)
            self.session.flush()
        except IntegrityError as e:
            # Another process created it between the check and the insert
            raise AlreadyDistributed(contributor_key) from e
        except SQLAlchemyError as e:
            logger.error(f"Database error storing distribution: {e}")
            raise DatabaseError(f"Failed to store distribution: {e}") from e

        return _to_distribution(record)

    def mark_claimed(self, contributor_key: bytes, claimed_ct: bytes) -> Distribution:
        """Flip a distribution to claimed. Only ever false to true."""
        record = self._record(contributor_key)
        if record is None:
            raise NoDistribution(contributor_key)

        result = self.session.execute(
            update(DistributionRecord)
            .where(
                DistributionRecord.id == record.id,
                DistributionRecord.status == DistributionStatus.CREATED.value
            )
            .values(claimed_ct=claimed_ct, status=DistributionStatus.CLAIMED.value, claimed_at=utcnow())
            .execution_options(synchronize_session='fetch')
        )
        if result.rowcount != 1:
            # Settled by another process since the status was read
            logger.warning(f"Distribution for {contributor_key.hex()} was claimed concurrently")
            raise AlreadyClaimed(contributor_key)

        self.session.refresh(record)
        return _to_distribution(record)

    def record_revealed(self, contribution_id: int, share_percentage: int, payment_amount: int) -> None:
        self.session.add(RevealedRoyaltyRecord(
            contribution_id=contribution_id,
            share_percentage=share_percentage,
            payment_amount=payment_amount,
            revealed=True
        ))

    def revealed_royalty(self, contribution_id: int) -> RevealedRoyalty:
        """Audit view of a contribution, zeroed when never revealed"""
        record = self.session.get(RevealedRoyaltyRecord, contribution_id)
        if record is None:
            return RevealedRoyalty()
        return RevealedRoyalty(
            share_percentage=record.share_percentage,
            payment_amount=record.payment_amount,
            revealed=record.revealed
        )

    def is_revealed(self, contribution_id: int) -> bool:
        return self.session.get(RevealedRoyaltyRecord, contribution_id) is not None

    def revealed_count(self) -> int:
        return self.session.execute(select(func.count(RevealedRoyaltyRecord.contribution_id))).scalar_one()

    def count_by_status(self) -> Dict[str, int]:
        counts = {status.value: 0 for status in DistributionStatus}
        rows = self.session.execute(
            select(DistributionRecord.status, func.count(DistributionRecord.id))
            .group_by(DistributionRecord.status)
        ).all()
        for status, count in rows:
            counts[status] = count
        return counts

class RewardPool:
    """
    Reward pool balance. deposit() is the only way to change it, and it only
    ever increases the balance.
    """

    def __init__(self, session: Session):
        self.session = session

    def _stored_balance(self) -> Optional[int]:
        return self.session.execute(
            select(RewardPoolRecord.balance).where(RewardPoolRecord.id == RewardPoolRecord.SINGLETON_ID)
        ).scalar_one_or_none()

    def balance(self) -> int:
        balance = self._stored_balance()
        return int(balance or 0)

    def deposit(self, amount: int) -> int:
        """
        Increase the pool by amount and return the new balance

        Raises:
            InvalidDeposit: If amount is not a non-negative integer, or the
                balance would leave the uint256 range
        """
        if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
            raise InvalidDeposit(amount)

        try:
            while True:
                current = self._stored_balance()
                if current is None:
                    if amount > MAX_WORD:
                        raise InvalidDeposit(amount)
                    self.session.add(RewardPoolRecord(id=RewardPoolRecord.SINGLETON_ID, balance=amount))
                    self.session.flush()
                    return amount

                new_balance = current + amount
                if new_balance > MAX_WORD:
                    logger.warning(f"Deposit of {amount} rejected: pool balance would overflow")
                    raise InvalidDeposit(amount)

                # Compare-and-swap so concurrent deposits never lose an update
                result = self.session.execute(
                    update(RewardPoolRecord)
                    .where(
                        RewardPoolRecord.id == RewardPoolRecord.SINGLETON_ID,
                        RewardPoolRecord.balance == current
                    )
                    .values(balance=new_balance, updated_at=utcnow())
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 1:
                    return new_balance
        except SQLAlchemyError as e:
            logger.error(f"Database error depositing to reward pool: {e}")
            raise DatabaseError(f"Failed to deposit to reward pool: {e}") from e
