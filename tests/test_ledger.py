"""
Tests for the distribution ledger and reward pool.

Tests cover:
- Monotonic deposits and rejected amounts
- One distribution per contributor key
- Claim flag transitions
- Revealed royalty defaults
"""
import pytest
from sqlalchemy import delete

from fhe_royalties.codec import MAX_WORD
from fhe_royalties.errors import AlreadyClaimed, AlreadyDistributed, InvalidDeposit, NoDistribution
from fhe_royalties.models.contribution import DistributionStatus
from fhe_royalties.models.db import RewardPoolRecord
from fhe_royalties.models.royalty import RevealedRoyalty
from fhe_royalties.services.ledger import DistributionLedger, RewardPool

from conftest import contributor_key


class TestRewardPool:

    def test_starts_empty(self, service):
        assert service.pool_balance() == 0

    def test_deposits_accumulate(self, service):
        amounts = [10, 0, 250, 7]
        for amount in amounts:
            service.deposit_to_pool(amount)
        assert service.pool_balance() == sum(amounts)

    def test_deposit_returns_new_balance(self, service):
        service.deposit_to_pool(5)
        assert service.deposit_to_pool(6) == 11

    @pytest.mark.parametrize("amount", [-1, 1.5, "10", None, True])
    def test_invalid_deposit(self, service, amount):
        service.deposit_to_pool(100)
        with pytest.raises(InvalidDeposit):
            service.deposit_to_pool(amount)
        assert service.pool_balance() == 100

    def test_deposit_recreates_missing_row(self, database):
        with database.session() as session:
            session.execute(delete(RewardPoolRecord))
        with database.session() as session:
            assert RewardPool(session).deposit(3) == 3

    def test_amounts_beyond_64_bits(self, service):
        """Pools are denominated in base units such as wei"""
        assert service.deposit_to_pool(10**19) == 10**19
        service.deposit_to_pool(2**64)
        assert service.pool_balance() == 10**19 + 2**64

    def test_uint256_ceiling(self, service):
        service.deposit_to_pool(MAX_WORD - 1)
        assert service.deposit_to_pool(1) == MAX_WORD
        with pytest.raises(InvalidDeposit):
            service.deposit_to_pool(1)
        assert service.pool_balance() == MAX_WORD


class TestDistributionLedger:

    def create(self, database, key=contributor_key(1), contribution_id=1):
        with database.session() as session:
            return DistributionLedger(session).create(key, contribution_id, b"share", b"payment", b"claimed")

    def test_create(self, database):
        distribution = self.create(database)
        assert distribution.status == DistributionStatus.CREATED
        assert distribution.claimed_at is None
        assert distribution.share == b"share"

    def test_second_create_rejected(self, database):
        self.create(database)
        with pytest.raises(AlreadyDistributed):
            self.create(database, contribution_id=2)
        with database.session() as session:
            assert DistributionLedger(session).get(contributor_key(1)).contribution_id == 1

    def test_independent_keys(self, database):
        self.create(database, key=contributor_key(1))
        self.create(database, key=contributor_key(2))
        with database.session() as session:
            assert DistributionLedger(session).count_by_status() == {"created": 2, "claimed": 0}

    def test_mark_claimed(self, database):
        self.create(database)
        with database.session() as session:
            distribution = DistributionLedger(session).mark_claimed(contributor_key(1), b"claimed-true")
        assert distribution.status == DistributionStatus.CLAIMED
        assert distribution.claimed == b"claimed-true"
        assert distribution.claimed_at is not None

    def test_mark_claimed_twice(self, database):
        self.create(database)
        with database.session() as session:
            DistributionLedger(session).mark_claimed(contributor_key(1), b"claimed-true")
        with pytest.raises(AlreadyClaimed):
            with database.session() as session:
                DistributionLedger(session).mark_claimed(contributor_key(1), b"claimed-again")
        with database.session() as session:
            assert DistributionLedger(session).get(contributor_key(1)).claimed == b"claimed-true"

    def test_mark_claimed_without_distribution(self, database):
        with pytest.raises(NoDistribution):
            with database.session() as session:
                DistributionLedger(session).mark_claimed(contributor_key(1), b"x")

    def test_revealed_royalty_defaults(self, database):
        with database.session() as session:
            assert DistributionLedger(session).revealed_royalty(42) == RevealedRoyalty(
                share_percentage=0, payment_amount=0, revealed=False
            )

    def test_record_revealed(self, database):
        with database.session() as session:
            DistributionLedger(session).record_revealed(3, 83, 8)
        with database.session() as session:
            ledger = DistributionLedger(session)
            assert ledger.revealed_royalty(3) == RevealedRoyalty(share_percentage=83, payment_amount=8, revealed=True)
            assert ledger.is_revealed(3)
            assert ledger.revealed_count() == 1

    def test_record_revealed_large_payment(self, database):
        with database.session() as session:
            DistributionLedger(session).record_revealed(4, 2**32 - 1, 10**30)
        with database.session() as session:
            assert DistributionLedger(session).revealed_royalty(4).payment_amount == 10**30
