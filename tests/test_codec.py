"""Tests for decoding oracle cleartext payloads."""
import pytest

from fhe_royalties.codec import decode_claim, decode_metrics, encode_words
from fhe_royalties.config import WORD_SIZE
from fhe_royalties.errors import DecodeError, ProofInvalid


class TestDecodeMetrics:

    def test_decodes_in_order(self):
        payload = decode_metrics("1", encode_words([100, 80, 60]))
        assert payload.compute_hours == 100
        assert payload.data_quality == 80
        assert payload.model_impact == 60

    def test_too_few_words(self):
        with pytest.raises(DecodeError) as exc:
            decode_metrics("1", encode_words([100, 80]))
        assert exc.value.request_id == "1"

    def test_too_many_words(self):
        with pytest.raises(DecodeError):
            decode_metrics("1", encode_words([1, 2, 3, 4]))

    def test_truncated_word(self):
        with pytest.raises(DecodeError):
            decode_metrics("1", encode_words([1, 2, 3])[:-1])

    def test_value_above_bound(self):
        with pytest.raises(DecodeError, match="data_quality"):
            decode_metrics("1", encode_words([1, 1001, 3]), max_value=1000)

    def test_bound_is_inclusive(self):
        assert decode_metrics("1", encode_words([1000, 1000, 1000]), max_value=1000).model_impact == 1000

    def test_not_bytes(self):
        with pytest.raises(DecodeError):
            decode_metrics("1", "not bytes")

    def test_decode_error_is_proof_invalid(self):
        """Malformed output is rejected the same way as a bad attestation"""
        with pytest.raises(ProofInvalid):
            decode_metrics("1", b"")


class TestDecodeClaim:

    def test_open_claim(self):
        payload = decode_claim("7", encode_words([0, 42]))
        assert payload.claimed is False
        assert payload.payment_amount == 42

    def test_claimed_flag(self):
        assert decode_claim("7", encode_words([1, 42])).claimed is True

    def test_flag_must_be_boolean(self):
        with pytest.raises(DecodeError, match="flag"):
            decode_claim("7", encode_words([2, 42]))

    def test_wrong_length(self):
        with pytest.raises(DecodeError):
            decode_claim("7", b"\x00" * (WORD_SIZE * 3))


def test_encode_rejects_negative():
    with pytest.raises(ValueError):
        encode_words([-1])
