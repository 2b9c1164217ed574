"""Read models returned by the royalty service"""
from typing import Dict
from pydantic import BaseModel

class RevealedRoyalty(BaseModel):
    """
    Plaintext audit view of a revealed royalty.

    Attributes:
        share_percentage: Share of the reward pool in basis points
        payment_amount: Payment computed against the pool at reveal time
        revealed: False when the contribution has not been revealed yet,
            in which case the other fields are zero
    """
    share_percentage: int = 0
    payment_amount: int = 0
    revealed: bool = False

class ClaimSettlement(BaseModel):
    """Finalized claim, handed to the external payment rail"""
    contributor_key: str
    payment_amount: int
    request_id: str

class RoyaltySummary(BaseModel):
    """Aggregate counters for operators"""
    contributions: Dict[str, int] = {}
    distributions: Dict[str, int] = {}
    pending_requests: int = 0
    pool_balance: int = 0
