"""Decryption oracle boundary and a local reference oracle"""
import hashlib
import logging
import threading
import uuid
from abc import ABC, abstractmethod
from collections import OrderedDict
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from cryptography.exceptions import InvalidSignature
from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey, Ed25519PublicKey

from fhe_royalties.codec import encode_words
from fhe_royalties.config import WORD_SIZE, Settings

logger = logging.getLogger(__name__)

OracleCallback = Callable[[str, bytes, bytes], object]

class CipherSuite(ABC):
    """Encryption primitives owned by the external crypto library"""

    @abstractmethod
    def encrypt_uint(self, value: int) -> bytes:
        ...

    @abstractmethod
    def decrypt_uint(self, ciphertext: bytes) -> int:
        ...

class DecryptionOracle(ABC):
    """
    Off-system service that decrypts ciphertexts and attests the result.

    request_decryption returns immediately. The oracle later calls
    callback(request_id, cleartext, proof) at most once per request under
    correct operation; callers must not rely on that. The callback must not
    run before request_decryption has returned, since the request id is only
    registered afterwards.
    """

    @abstractmethod
    def request_decryption(self, ciphertexts: Sequence[bytes], callback: OracleCallback) -> str:
        ...

    @abstractmethod
    def verify_proof(self, request_id: str, cleartext: bytes, proof: bytes) -> bool:
        ...

class FernetCipherSuite(CipherSuite):
    """Symmetric stand-in for the homomorphic scheme, encrypting fixed-size words"""

    def __init__(self, key: Optional[bytes] = None):
        self.key = key or Fernet.generate_key()
        self._fernet = Fernet(self.key)

    def encrypt_uint(self, value: int) -> bytes:
        return self._fernet.encrypt(encode_words([value]))

    def decrypt_uint(self, ciphertext: bytes) -> int:
        try:
            plaintext = self._fernet.decrypt(ciphertext)
        except InvalidToken as e:
            raise ValueError("Ciphertext could not be decrypted") from e
        if len(plaintext) != WORD_SIZE:
            raise ValueError(f"Decrypted word has {len(plaintext)} bytes")
        return int.from_bytes(plaintext, 'big')

def proof_digest(request_id: str, cleartext: bytes) -> bytes:
    """Message the oracle signs: binds the cleartext to its request"""
    return hashlib.sha256(request_id.encode('utf-8') + b'\x00' + cleartext).digest()

class OracleProofVerifier:
    """Checks Ed25519 attestations produced by the oracle signer"""

    def __init__(self, public_key: Ed25519PublicKey):
        self.public_key = public_key

    @classmethod
    def from_hex(cls, public_key_hex: str) -> 'OracleProofVerifier':
        return cls(Ed25519PublicKey.from_public_bytes(bytes.fromhex(public_key_hex)))

    def verify(self, request_id: str, cleartext: bytes, proof: bytes) -> bool:
        """Fails closed: anything other than a valid signature is False"""
        try:
            self.public_key.verify(proof, proof_digest(request_id, cleartext))
            return True
        except InvalidSignature:
            logger.warning(f"Oracle signature mismatch for request {request_id}")
            return False
        except Exception as e:
            logger.warning(f"Malformed oracle proof for request {request_id}: {e}")
            return False

class LocalDecryptionOracle(DecryptionOracle):
    """
    In-process oracle that holds requests until they are delivered.

    Nothing is decrypted at request time. deliver() plays the part of the
    external actor calling back at some later moment; requests that are never
    delivered model an oracle that never answers.
    """

    def __init__(self, cipher: CipherSuite, signing_key: Optional[Ed25519PrivateKey] = None):
        self.cipher = cipher
        self._signing_key = signing_key or Ed25519PrivateKey.generate()
        self.verifier = OracleProofVerifier(self._signing_key.public_key())
        self._requests: Dict[str, Tuple[List[bytes], OracleCallback]] = OrderedDict()
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> 'LocalDecryptionOracle':
        """Build the oracle and its cipher suite from configured keys"""
        cipher = FernetCipherSuite(settings.CIPHER_KEY.encode() if settings.CIPHER_KEY else None)
        signing_key = None
        if settings.ORACLE_SIGNING_KEY:
            signing_key = Ed25519PrivateKey.from_private_bytes(bytes.fromhex(settings.ORACLE_SIGNING_KEY))
        return cls(cipher, signing_key)

    @property
    def public_key_hex(self) -> str:
        return self._signing_key.public_key().public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw
        ).hex()

    def request_decryption(self, ciphertexts: Sequence[bytes], callback: OracleCallback) -> str:
        with self._lock:
            request_id = uuid.uuid4().hex
            self._requests[request_id] = (list(ciphertexts), callback)
        logger.info(f"Oracle accepted request {request_id} for {len(ciphertexts)} ciphertexts")
        return request_id

    def verify_proof(self, request_id: str, cleartext: bytes, proof: bytes) -> bool:
        return self.verifier.verify(request_id, cleartext, proof)

    def pending(self) -> List[str]:
        with self._lock:
            return list(self._requests)

    def sign(self, request_id: str, cleartext: bytes) -> bytes:
        return self._signing_key.sign(proof_digest(request_id, cleartext))

    def reveal(self, request_id: str) -> Tuple[bytes, bytes]:
        """Decrypt and attest a queued request without delivering it"""
        with self._lock:
            ciphertexts, _ = self._requests[request_id]
        cleartext = encode_words([self.cipher.decrypt_uint(ct) for ct in ciphertexts])
        return cleartext, self.sign(request_id, cleartext)

    def deliver(self, request_id: str):
        """
        Decrypt a queued request and invoke its callback.

        Returns whatever the callback returns; callback errors propagate.

        Raises:
            KeyError: If the request was never issued or already delivered
        """
        cleartext, proof = self.reveal(request_id)
        with self._lock:
            _, callback = self._requests.pop(request_id)
        logger.info(f"Oracle delivering request {request_id}")
        return callback(request_id, cleartext, proof)

    def deliver_all(self) -> list:
        """Deliver every queued request in issue order"""
        return [self.deliver(request_id) for request_id in self.pending()]

    def drop(self, request_id: str) -> None:
        """Forget a request so its callback never arrives"""
        with self._lock:
            self._requests.pop(request_id, None)
