"""Models for oracle requests and decoded cleartext payloads"""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import NamedTuple

class RequestKind(str, Enum):
    CALCULATION = 'calculation'
    CLAIM = 'claim'

@dataclass(frozen=True)
class PendingRequest:
    """
    Oracle request awaiting its callback.

    context is the contribution id (as a string) for calculations and the hex
    contributor key for claims. contributor_key is kept for both kinds so the
    per-key critical section can be entered before the entry is consumed.
    """
    request_id: str
    kind: RequestKind
    context: str
    contributor_key: bytes
    created_at: datetime
    expires_at: datetime

class MetricsPayload(NamedTuple):
    """Decrypted calculation inputs"""
    compute_hours: int
    data_quality: int
    model_impact: int

class ClaimPayload(NamedTuple):
    """Decrypted claim flag and payment amount"""
    claimed: bool
    payment_amount: int
