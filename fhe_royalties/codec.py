"""Encoding of oracle cleartext payloads

The oracle returns decrypted values as a sequence of big-endian unsigned
words of WORD_SIZE bytes, one per requested ciphertext, in request order.
"""
from typing import List, Optional, Sequence

from fhe_royalties.config import WORD_SIZE, settings
from fhe_royalties.errors import DecodeError
from fhe_royalties.models.oracle import ClaimPayload, MetricsPayload

MAX_WORD = 2 ** (WORD_SIZE * 8) - 1

def encode_words(values: Sequence[int]) -> bytes:
    """Encode unsigned integers as consecutive fixed-size words"""
    out = bytearray()
    for value in values:
        if value < 0 or value > MAX_WORD:
            raise ValueError(f"Value out of word range: {value}")
        out += int(value).to_bytes(WORD_SIZE, 'big')
    return bytes(out)

def decode_words(request_id: str, cleartext: bytes, count: int) -> List[int]:
    """Split cleartext into exactly `count` words"""
    if not isinstance(cleartext, (bytes, bytearray)):
        raise DecodeError(request_id, f"cleartext must be bytes, got {type(cleartext).__name__}")
    expected = count * WORD_SIZE
    if len(cleartext) != expected:
        raise DecodeError(request_id, f"expected {expected} bytes, got {len(cleartext)}")
    return [
        int.from_bytes(cleartext[i:i + WORD_SIZE], 'big')
        for i in range(0, expected, WORD_SIZE)
    ]

def decode_metrics(request_id: str, cleartext: bytes, max_value: Optional[int] = None) -> MetricsPayload:
    """Decode (compute hours, data quality, model impact)"""
    if max_value is None:
        max_value = settings.MAX_METRIC_VALUE
    words = decode_words(request_id, cleartext, 3)
    for name, value in zip(MetricsPayload._fields, words):
        if value > max_value:
            raise DecodeError(request_id, f"{name} out of range: {value} > {max_value}")
    return MetricsPayload(*words)

def decode_claim(request_id: str, cleartext: bytes) -> ClaimPayload:
    """Decode (claimed flag, payment amount)"""
    flag, payment = decode_words(request_id, cleartext, 2)
    if flag not in (0, 1):
        raise DecodeError(request_id, f"claimed flag must be 0 or 1, got {flag}")
    return ClaimPayload(claimed=bool(flag), payment_amount=payment)
