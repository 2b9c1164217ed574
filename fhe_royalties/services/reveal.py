"""Reveal engine: turns encrypted contributions into distributions"""
import logging
from typing import Optional

from fhe_royalties.codec import MAX_WORD, decode_metrics
from fhe_royalties.config import settings
from fhe_royalties.errors import AlreadyDistributed, DecodeError
from fhe_royalties.events import RoyaltyRevealed
from fhe_royalties.models.oracle import RequestKind
from fhe_royalties.models.royalty import RevealedRoyalty
from fhe_royalties.scoring import RoyaltyScorer
from fhe_royalties.services.contributions import ContributionStore
from fhe_royalties.services.flow import OracleFlow
from fhe_royalties.services.ledger import DistributionLedger, RewardPool
from fhe_royalties.services.oracle import OracleCallback

logger = logging.getLogger(__name__)

class RevealEngine(OracleFlow):
    """Requests metric decryption and computes the royalty on callback"""

    kind = RequestKind.CALCULATION

    def __init__(self, *args, scorer: Optional[RoyaltyScorer] = None,
                 max_metric_value: Optional[int] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.scorer = scorer or RoyaltyScorer()
        self.max_metric_value = max_metric_value if max_metric_value is not None else settings.MAX_METRIC_VALUE

    def _bound_callback(self, contributor_key: bytes) -> OracleCallback:
        def callback(request_id: str, cleartext: bytes, proof: bytes) -> RevealedRoyalty:
            return self._reveal(request_id, cleartext, proof, contributor_key)
        return callback

    def request_calculation(self, contribution_id: int) -> str:
        """
        Ask the oracle to decrypt a contribution's metrics.

        Returns the oracle request id at once; the royalty is computed when
        the callback arrives.

        Raises:
            ContributionNotFound: If the contribution does not exist
            AlreadyDistributed: If the contributor already has a distribution
        """
        with self.db.session() as session:
            contribution = ContributionStore(session).get(contribution_id)
        key = contribution.contributor_key

        with self.locks.hold(key):
            with self.db.session() as session:
                if DistributionLedger(session).exists(key):
                    logger.warning(f"Calculation rejected for contribution {contribution_id}: already distributed")
                    raise AlreadyDistributed(key)

                pending = self._issue(
                    session,
                    context=str(contribution_id),
                    contributor_key=key,
                    ciphertexts=contribution.metrics.as_list(),
                    callback=self._bound_callback(key)
                )

        logger.info(f"Requested calculation for contribution {contribution_id} as request {pending.request_id}")
        return pending.request_id

    def on_calculation_revealed(self, request_id: str, cleartext: bytes, proof: bytes) -> RevealedRoyalty:
        """
        Oracle callback for a calculation request.

        Raises:
            UnknownRequest: If request_id is not a live calculation request
            ProofInvalid: If the oracle proof does not verify
            DecodeError: If the cleartext is not three in-range metrics
            AlreadyDistributed: If the contributor was paid in the meantime
        """
        return self._reveal(request_id, cleartext, proof, self._key_for(request_id))

    def _reveal(self, request_id: str, cleartext: bytes, proof: bytes, key: bytes) -> RevealedRoyalty:
        with self.locks.hold(key):
            pending = self._consume(request_id, key)
            contribution_id = int(pending.context)

            self._verify(request_id, cleartext, proof)
            try:
                metrics = decode_metrics(request_id, cleartext, self.max_metric_value)
            except DecodeError as e:
                logger.warning(f"Rejected calculation for contribution {contribution_id}: {e.reason}")
                raise

            breakdown = self.scorer.calculate_share(metrics)

            with self.db.session() as session:
                # Pool as observed now, not when the request was issued
                pool_balance = RewardPool(session).balance()
                payment = self.scorer.calculate_payment(pool_balance, breakdown.share)
                if payment > MAX_WORD:
                    logger.warning(f"Rejected calculation for contribution {contribution_id}: payment overflows")
                    raise DecodeError(request_id, f"payment {payment} exceeds the uint256 range")

                ledger = DistributionLedger(session)
                if ledger.exists(key):
                    logger.warning(f"Calculation rejected for contribution {contribution_id}: already distributed")
                    raise AlreadyDistributed(key)

                ledger.create(
                    contributor_key=key,
                    contribution_id=contribution_id,
                    share_ct=self.cipher.encrypt_uint(breakdown.share),
                    payment_ct=self.cipher.encrypt_uint(payment),
                    claimed_ct=self.cipher.encrypt_uint(0)
                )
                ledger.record_revealed(contribution_id, breakdown.share, payment)

        logger.info(f"Revealed royalty for contribution {contribution_id} (request {request_id})")
        self.events.emit(RoyaltyRevealed(
            contribution_id=contribution_id,
            contributor_key=key,
            request_id=request_id
        ))
        return RevealedRoyalty(share_percentage=breakdown.share, payment_amount=payment, revealed=True)
