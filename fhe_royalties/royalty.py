"""Royalty service: wires the store, registry, ledger and oracle flows"""
import logging
from datetime import datetime
from typing import Callable, List, Optional

from fhe_royalties.config import Settings, settings as default_settings
from fhe_royalties.db import Database
from fhe_royalties.events import ContributionRecorded, EventBus, RequestExpired
from fhe_royalties.locks import KeyedLock
from fhe_royalties.models.contribution import (
    Contribution, ContributionState, Distribution, DistributionState, DistributionStatus, EncryptedMetrics
)
from fhe_royalties.models.db import utcnow
from fhe_royalties.models.oracle import PendingRequest, RequestKind
from fhe_royalties.models.royalty import ClaimSettlement, RevealedRoyalty, RoyaltySummary
from fhe_royalties.services.claims import ClaimProcessor
from fhe_royalties.services.contributions import ContributionStore
from fhe_royalties.services.ledger import DistributionLedger, RewardPool
from fhe_royalties.services.oracle import CipherSuite, DecryptionOracle
from fhe_royalties.services.registry import CorrelationRegistry
from fhe_royalties.services.reveal import RevealEngine

logger = logging.getLogger(__name__)

class RoyaltyService:
    """Entry point for submitting, revealing and claiming royalties"""

    def __init__(self, database: Database, oracle: DecryptionOracle, cipher: CipherSuite,
                 settings: Optional[Settings] = None, events: Optional[EventBus] = None,
                 clock: Callable[[], datetime] = utcnow):
        """Initialize the service and its oracle flows with shared locks and events"""
        self.settings = settings or default_settings
        self.db = database
        self.oracle = oracle
        self.cipher = cipher
        self.events = events or EventBus()
        self.locks = KeyedLock()
        self.clock = clock

        flow_kwargs = dict(
            locks=self.locks,
            events=self.events,
            request_timeout=self.settings.REQUEST_TIMEOUT_SECONDS,
            clock=clock
        )
        self.reveal = RevealEngine(database, oracle, cipher,
                                   max_metric_value=self.settings.MAX_METRIC_VALUE, **flow_kwargs)
        self.claims = ClaimProcessor(database, oracle, cipher, **flow_kwargs)

    # Contributions

    def submit(self, metrics: EncryptedMetrics, contributor_key: bytes) -> int:
        """Record an encrypted contribution and return its id"""
        with self.db.session() as session:
            contribution = ContributionStore(session, self.settings.CONTRIBUTOR_KEY_SIZE).submit(
                metrics, contributor_key
            )

        self.events.emit(ContributionRecorded(
            contribution_id=contribution.id,
            contributor_key=contribution.contributor_key,
            timestamp=contribution.timestamp
        ))
        return contribution.id

    def get_contribution(self, contribution_id: int) -> Contribution:
        with self.db.session() as session:
            return ContributionStore(session).get(contribution_id)

    def list_contributions(self, offset: int = 0, limit: int = 100) -> List[Contribution]:
        with self.db.session() as session:
            return ContributionStore(session).list(offset, limit)

    def contribution_state(self, contribution_id: int) -> ContributionState:
        with self.db.session() as session:
            ContributionStore(session).get(contribution_id)
            return self._contribution_state(session, contribution_id)

    def _contribution_state(self, session, contribution_id: int) -> ContributionState:
        if DistributionLedger(session).is_revealed(contribution_id):
            return ContributionState.REVEALED
        if CorrelationRegistry(session).has_pending(RequestKind.CALCULATION, str(contribution_id)):
            return ContributionState.CALCULATION_REQUESTED
        return ContributionState.SUBMITTED

    # Reward pool

    def deposit_to_pool(self, amount: int) -> int:
        """Add funds to the reward pool and return the new balance"""
        with self.db.session() as session:
            balance = RewardPool(session).deposit(amount)
        logger.info(f"Deposited {amount} to reward pool, balance {balance}")
        return balance

    def pool_balance(self) -> int:
        with self.db.session() as session:
            return RewardPool(session).balance()

    # Reveal and claim

    def request_calculation(self, contribution_id: int) -> str:
        return self.reveal.request_calculation(contribution_id)

    def on_calculation_revealed(self, request_id: str, cleartext: bytes, proof: bytes) -> RevealedRoyalty:
        return self.reveal.on_calculation_revealed(request_id, cleartext, proof)

    def request_claim(self, contributor_key: bytes) -> str:
        return self.claims.request_claim(contributor_key)

    def on_claim_revealed(self, request_id: str, cleartext: bytes, proof: bytes) -> ClaimSettlement:
        return self.claims.on_claim_revealed(request_id, cleartext, proof)

    # Reads

    def get_revealed_royalty(self, contribution_id: int) -> RevealedRoyalty:
        """Plaintext audit entry for a contribution, zeroed if not revealed"""
        with self.db.session() as session:
            return DistributionLedger(session).revealed_royalty(contribution_id)

    def get_distribution(self, contributor_key: bytes) -> Optional[Distribution]:
        with self.db.session() as session:
            return DistributionLedger(session).get(contributor_key)

    def distribution_state(self, contributor_key: bytes) -> Optional[DistributionState]:
        """Claim progress of a contributor, None without a distribution"""
        with self.db.session() as session:
            distribution = DistributionLedger(session).get(contributor_key)
            if distribution is None:
                return None
            if distribution.status == DistributionStatus.CLAIMED:
                return DistributionState.CLAIMED
            if CorrelationRegistry(session).has_pending(RequestKind.CLAIM, contributor_key.hex()):
                return DistributionState.CLAIM_REQUESTED
            return DistributionState.CREATED

    # Operations

    def sweep_expired(self, now: Optional[datetime] = None) -> List[PendingRequest]:
        """
        Expire pending requests whose callback never arrived.

        The affected contribution or distribution can be requested again; a
        callback arriving later for a swept request fails with UnknownRequest.
        """
        now = now or self.clock()
        with self.db.session() as session:
            expired = CorrelationRegistry(session).expire(now)

        for pending in expired:
            logger.info(f"Expired {pending.kind.value} request {pending.request_id} for {pending.context}")
            self.events.emit(RequestExpired(
                request_id=pending.request_id,
                kind=pending.kind.value,
                context=pending.context
            ))
        return expired

    def summary(self) -> RoyaltySummary:
        with self.db.session() as session:
            contributions = {state.value: 0 for state in ContributionState}
            for contribution_id in ContributionStore(session).ids():
                contributions[self._contribution_state(session, contribution_id).value] += 1

            return RoyaltySummary(
                contributions=contributions,
                distributions=DistributionLedger(session).count_by_status(),
                pending_requests=CorrelationRegistry(session).count(),
                pool_balance=RewardPool(session).balance()
            )

    def is_available(self) -> bool:
        return self.db.initialized and self.db.ping()
