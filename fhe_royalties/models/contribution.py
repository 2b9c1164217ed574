"""Domain models for encrypted contributions and their distributions"""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import List, Optional

@dataclass(frozen=True)
class EncryptedMetrics:
    """Ciphertexts of the three performance metrics, opaque to this system"""
    compute_hours: bytes
    data_quality: bytes
    model_impact: bytes

    def as_list(self) -> List[bytes]:
        """Ciphertexts in the order the oracle decodes them"""
        return [self.compute_hours, self.data_quality, self.model_impact]

@dataclass(frozen=True)
class Contribution:
    """Submitted contribution"""
    id: int
    contributor_key: bytes
    metrics: EncryptedMetrics
    timestamp: datetime

class ContributionState(str, Enum):
    SUBMITTED = 'submitted'
    CALCULATION_REQUESTED = 'calculation_requested'
    REVEALED = 'revealed'

class DistributionStatus(str, Enum):
    """Persisted claim status of a distribution"""
    CREATED = 'created'
    CLAIMED = 'claimed'

class DistributionState(str, Enum):
    CREATED = 'created'
    CLAIM_REQUESTED = 'claim_requested'
    CLAIMED = 'claimed'

@dataclass(frozen=True)
class Distribution:
    """Encrypted royalty owed to a contributor"""
    contributor_key: bytes
    contribution_id: int
    share: bytes
    payment_amount: bytes
    claimed: bytes
    status: DistributionStatus
    created_at: datetime
    claimed_at: Optional[datetime] = None
