"""SQLAlchemy database models for the encrypted royalty ledger"""
from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, Boolean, DateTime, LargeBinary
from sqlalchemy.orm import declarative_base
from sqlalchemy.types import TypeDecorator

from fhe_royalties.config import WORD_SIZE

Base = declarative_base()

def utcnow() -> datetime:
    """Naive UTC timestamp, the form SQLite round-trips"""
    return datetime.now(timezone.utc).replace(tzinfo=None)

class UInt256(TypeDecorator):
    """
    Unsigned 256-bit integer stored as one fixed-width big-endian word.

    Amounts are token base units and outgrow 64-bit INTEGER columns.
    Equal values encode to equal bytes, so equality filters still work.
    """
    impl = LargeBinary
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return int(value).to_bytes(WORD_SIZE, 'big')

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return int.from_bytes(value, 'big')

class ContributionRecord(Base):
    """
    Append-only record of encrypted contributions.
    Metric ciphertexts are stored verbatim and never inspected.
    """
    __tablename__ = 'contributions'
    # Never reuse an id, even on SQLite
    __table_args__ = {'sqlite_autoincrement': True}

    id = Column(Integer, primary_key=True, autoincrement=True)
    contributor_key = Column(LargeBinary, nullable=False, index=True)
    compute_hours_ct = Column(LargeBinary, nullable=False)
    data_quality_ct = Column(LargeBinary, nullable=False)
    model_impact_ct = Column(LargeBinary, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)

class PendingRequestRecord(Base):
    """
    Live oracle request awaiting its callback.
    Deleted when the callback is processed or the request expires.
    """
    __tablename__ = 'pending_requests'

    request_id = Column(String, primary_key=True)
    kind = Column(String, nullable=False)
    # Contribution id for calculations, hex contributor key for claims
    context = Column(String, nullable=False, index=True)
    contributor_key = Column(LargeBinary, nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    expires_at = Column(DateTime, nullable=False, index=True)

class DistributionRecord(Base):
    """
    Computed royalty for a contributor, one row per contributor key.
    """
    __tablename__ = 'distributions'

    id = Column(Integer, primary_key=True)
    contributor_key = Column(LargeBinary, unique=True, nullable=False)
    contribution_id = Column(Integer, nullable=False)
    share_ct = Column(LargeBinary, nullable=False)
    payment_ct = Column(LargeBinary, nullable=False)
    claimed_ct = Column(LargeBinary, nullable=False)
    status = Column(String, nullable=False, default='created')
    created_at = Column(DateTime, nullable=False, default=utcnow)
    claimed_at = Column(DateTime, nullable=True)

class RevealedRoyaltyRecord(Base):
    """
    Plaintext audit cache of revealed royalties, keyed by contribution.
    """
    __tablename__ = 'revealed_royalties'

    contribution_id = Column(Integer, primary_key=True)
    share_percentage = Column(UInt256, nullable=False)
    payment_amount = Column(UInt256, nullable=False)
    revealed = Column(Boolean, nullable=False, default=True)
    revealed_at = Column(DateTime, nullable=False, default=utcnow)

class RewardPoolRecord(Base):
    """
    Single-row reward pool balance. Only ever incremented.
    """
    __tablename__ = 'reward_pool'

    SINGLETON_ID = 1

    id = Column(Integer, primary_key=True)
    balance = Column(UInt256, nullable=False, default=0)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
