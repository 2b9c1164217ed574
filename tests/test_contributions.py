"""Tests for the append-only contribution store."""
import pytest

from fhe_royalties.errors import ContributionNotFound, InvalidCiphertext, InvalidContributorKey
from fhe_royalties.events import ContributionRecorded
from fhe_royalties.models.contribution import ContributionState, EncryptedMetrics

from conftest import contributor_key, encrypt_metrics


class TestSubmit:

    def test_ids_strictly_increasing(self, submit):
        ids = [submit(contributor_key(i % 3)) for i in range(10)]
        assert ids == sorted(ids)
        assert len(set(ids)) == 10
        assert ids[0] >= 1

    def test_ciphertexts_stored_verbatim(self, service, cipher):
        metrics = encrypt_metrics(cipher, 1, 2, 3)
        contribution_id = service.submit(metrics, contributor_key(1))
        stored = service.get_contribution(contribution_id)
        assert stored.metrics == metrics
        assert stored.contributor_key == contributor_key(1)
        assert stored.timestamp is not None

    def test_opaque_ciphertexts_accepted(self, service):
        """Ciphertext contents are never validated"""
        metrics = EncryptedMetrics(b"a", b"b", b"c")
        assert service.submit(metrics, contributor_key(1)) >= 1

    def test_emits_contribution_recorded(self, submit, events):
        contribution_id = submit(contributor_key(4))
        assert len(events) == 1
        event = events[0]
        assert isinstance(event, ContributionRecorded)
        assert event.contribution_id == contribution_id
        assert event.contributor_key == contributor_key(4)

    def test_starts_submitted(self, service, submit):
        assert service.contribution_state(submit(contributor_key(1))) == ContributionState.SUBMITTED

    @pytest.mark.parametrize("key", [b"", b"\x01" * 31, b"\x01" * 33, "a" * 32])
    def test_invalid_contributor_key(self, service, cipher, key):
        with pytest.raises(InvalidContributorKey):
            service.submit(encrypt_metrics(cipher, 1, 1, 1), key)
        assert service.list_contributions() == []

    def test_empty_ciphertext(self, service):
        with pytest.raises(InvalidCiphertext):
            service.submit(EncryptedMetrics(b"x", b"", b"z"), contributor_key(1))


class TestRead:

    def test_missing_contribution(self, service):
        with pytest.raises(ContributionNotFound) as exc:
            service.get_contribution(99)
        assert exc.value.contribution_id == 99

    def test_state_of_missing_contribution(self, service):
        with pytest.raises(ContributionNotFound):
            service.contribution_state(99)

    def test_list_in_submission_order(self, service, submit):
        ids = [submit(contributor_key(i)) for i in range(5)]
        assert [c.id for c in service.list_contributions()] == ids
        assert [c.id for c in service.list_contributions(offset=2, limit=2)] == ids[2:4]
