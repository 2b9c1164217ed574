"""Claim processor: settles a distribution exactly once"""
import logging

from fhe_royalties.codec import decode_claim
from fhe_royalties.errors import AlreadyClaimed, NoDistribution
from fhe_royalties.events import ClaimSettled
from fhe_royalties.models.contribution import DistributionStatus
from fhe_royalties.models.oracle import RequestKind
from fhe_royalties.models.royalty import ClaimSettlement
from fhe_royalties.services.flow import OracleFlow
from fhe_royalties.services.ledger import DistributionLedger
from fhe_royalties.services.oracle import OracleCallback

logger = logging.getLogger(__name__)

class ClaimProcessor(OracleFlow):
    """
    Reveals a distribution's claim flag and payment, then marks it claimed.

    Several claim requests for one contributor may be in flight; the first
    callback settles and the rest fail with AlreadyClaimed.
    """

    kind = RequestKind.CLAIM

    def _bound_callback(self, contributor_key: bytes) -> OracleCallback:
        def callback(request_id: str, cleartext: bytes, proof: bytes) -> ClaimSettlement:
            return self._settle(request_id, cleartext, proof, contributor_key)
        return callback

    def request_claim(self, contributor_key: bytes) -> str:
        key = bytes(contributor_key)
        with self.locks.hold(key):
            with self.db.session() as session:
                distribution = DistributionLedger(session).get(key)
                if distribution is None:
                    logger.warning(f"Claim rejected for {key.hex()}: no distribution")
                    raise NoDistribution(key)
                if distribution.status == DistributionStatus.CLAIMED:
                    logger.warning(f"Claim rejected for {key.hex()}: already claimed")
                    raise AlreadyClaimed(key)

                pending = self._issue(
                    session,
                    context=key.hex(),
                    contributor_key=key,
                    ciphertexts=[distribution.claimed, distribution.payment_amount],
                    callback=self._bound_callback(key)
                )

        logger.info(f"Requested claim for {key.hex()} as request {pending.request_id}")
        return pending.request_id

    def on_claim_revealed(self, request_id: str, cleartext: bytes, proof: bytes) -> ClaimSettlement:
        """
        Oracle callback for a claim request.

        Raises:
            UnknownRequest: If request_id is not a live claim request
            ProofInvalid: If the oracle proof does not verify
            DecodeError: If the cleartext is not a flag and an amount
            AlreadyClaimed: If the distribution was settled in the meantime
        """
        return self._settle(request_id, cleartext, proof, self._key_for(request_id))

    def _settle(self, request_id: str, cleartext: bytes, proof: bytes, key: bytes) -> ClaimSettlement:
        with self.locks.hold(key):
            self._consume(request_id, key)
            self._verify(request_id, cleartext, proof)
            payload = decode_claim(request_id, cleartext)

            with self.db.session() as session:
                ledger = DistributionLedger(session)
                distribution = ledger.get(key)
                if distribution is None:
                    raise NoDistribution(key)
                if distribution.status == DistributionStatus.CLAIMED or payload.claimed:
                    logger.warning(f"Claim {request_id} rejected for {key.hex()}: already claimed")
                    raise AlreadyClaimed(key)

                ledger.mark_claimed(key, self.cipher.encrypt_uint(1))

        logger.info(f"Settled claim for {key.hex()} (request {request_id})")
        self.events.emit(ClaimSettled(
            contributor_key=key,
            payment_amount=payload.payment_amount,
            request_id=request_id
        ))
        return ClaimSettlement(
            contributor_key=key.hex(),
            payment_amount=payload.payment_amount,
            request_id=request_id
        )
