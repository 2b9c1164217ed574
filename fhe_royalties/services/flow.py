"""Shared request/callback plumbing for oracle round-trips"""
import logging
from datetime import datetime, timedelta
from typing import Callable, Optional, Sequence

from sqlalchemy.orm import Session

from fhe_royalties.config import settings
from fhe_royalties.db import Database
from fhe_royalties.errors import ProofInvalid, UnknownRequest
from fhe_royalties.events import EventBus
from fhe_royalties.locks import KeyedLock
from fhe_royalties.models.db import utcnow
from fhe_royalties.models.oracle import PendingRequest, RequestKind
from fhe_royalties.services.oracle import CipherSuite, DecryptionOracle, OracleCallback
from fhe_royalties.services.registry import CorrelationRegistry

logger = logging.getLogger(__name__)

class OracleFlow:
    """
    Base for components that issue decryption requests and handle callbacks.

    Every callback runs inside the critical section of its contributor key.
    Callbacks handed to the oracle are bound to the key at request time;
    callbacks arriving through the public entry points look the key up in
    the registry first.
    """

    kind: RequestKind

    def __init__(self, database: Database, oracle: DecryptionOracle, cipher: CipherSuite,
                 locks: Optional[KeyedLock] = None, events: Optional[EventBus] = None,
                 request_timeout: Optional[int] = None,
                 clock: Callable[[], datetime] = utcnow):
        self.db = database
        self.oracle = oracle
        self.cipher = cipher
        self.locks = locks or KeyedLock()
        self.events = events or EventBus()
        self.request_timeout = timedelta(
            seconds=request_timeout if request_timeout is not None else settings.REQUEST_TIMEOUT_SECONDS
        )
        self.clock = clock

    def _issue(self, session: Session, context: str, contributor_key: bytes,
               ciphertexts: Sequence[bytes], callback: OracleCallback) -> PendingRequest:
        """Send ciphertexts to the oracle and register the returned request id"""
        request_id = self.oracle.request_decryption(list(ciphertexts), callback)
        now = self.clock()
        return CorrelationRegistry(session).register(
            request_id=str(request_id),
            kind=self.kind,
            context=context,
            contributor_key=contributor_key,
            expires_at=now + self.request_timeout
        )

    def _key_for(self, request_id: str) -> bytes:
        with self.db.session() as session:
            pending = CorrelationRegistry(session).peek(request_id)
        if pending is None or pending.kind != self.kind:
            logger.warning(f"Rejected {self.kind.value} callback for unknown request {request_id}")
            raise UnknownRequest(request_id)
        return pending.contributor_key

    def _consume(self, request_id: str, contributor_key: bytes) -> PendingRequest:
        """
        Remove the registry entry and commit, whatever happens next.

        An entry of the wrong kind or for another key is left in place.
        """
        with self.db.session() as session:
            registry = CorrelationRegistry(session)
            pending = registry.peek(request_id)
            if pending is None or pending.kind != self.kind or pending.contributor_key != contributor_key:
                logger.warning(f"Rejected {self.kind.value} callback for unknown request {request_id}")
                raise UnknownRequest(request_id)
            return registry.consume(request_id)

    def _verify(self, request_id: str, cleartext: bytes, proof: bytes) -> None:
        """Fail closed: a verifier error counts as an invalid proof"""
        try:
            valid = self.oracle.verify_proof(request_id, cleartext, proof)
        except Exception as e:
            logger.error(f"Proof verification error for request {request_id}: {e}")
            valid = False
        if valid is not True:
            logger.warning(f"Rejected callback for request {request_id}: invalid proof")
            raise ProofInvalid(request_id)

