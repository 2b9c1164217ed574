"""
Pytest configuration and shared fixtures for the royalty ledger tests.

Provides:
- A fresh in-memory database per test
- The reference cipher suite and decryption oracle
- A controllable clock for request expiry
- The wired RoyaltyService
"""
from datetime import datetime, timedelta

import pytest

from fhe_royalties.config import Settings
from fhe_royalties.db import Database
from fhe_royalties.models.contribution import EncryptedMetrics
from fhe_royalties.royalty import RoyaltyService
from fhe_royalties.services.oracle import FernetCipherSuite, LocalDecryptionOracle

REQUEST_TIMEOUT = 60


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = datetime(2025, 1, 1, 12, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += timedelta(seconds=seconds)


def contributor_key(n: int) -> bytes:
    """Deterministic 32-byte pseudonym."""
    return bytes([n % 256]) * 32


def encrypt_metrics(cipher, compute_hours: int, data_quality: int, model_impact: int) -> EncryptedMetrics:
    return EncryptedMetrics(
        compute_hours=cipher.encrypt_uint(compute_hours),
        data_quality=cipher.encrypt_uint(data_quality),
        model_impact=cipher.encrypt_uint(model_impact),
    )


@pytest.fixture
def test_settings():
    return Settings(DATABASE_URL="sqlite://", REQUEST_TIMEOUT_SECONDS=REQUEST_TIMEOUT)


@pytest.fixture
def database():
    """Fresh in-memory database."""
    database = Database()
    database.init("sqlite://")
    yield database
    database.dispose()


@pytest.fixture
def file_database(tmp_path):
    """SQLite file database, for tests that use several threads."""
    database = Database()
    database.init(f"sqlite:///{tmp_path / 'royalties.db'}")
    yield database
    database.dispose()


@pytest.fixture
def cipher():
    return FernetCipherSuite()


@pytest.fixture
def oracle(cipher):
    return LocalDecryptionOracle(cipher)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def service(database, oracle, cipher, test_settings, clock):
    return RoyaltyService(database, oracle, cipher, settings=test_settings, clock=clock)


@pytest.fixture
def submit(service, cipher):
    """Submit plaintext metrics as an encrypted contribution."""
    def _submit(key: bytes, compute_hours: int = 100, data_quality: int = 80, model_impact: int = 60) -> int:
        return service.submit(encrypt_metrics(cipher, compute_hours, data_quality, model_impact), key)
    return _submit


@pytest.fixture
def events(service):
    """Events emitted by the service during the test."""
    received = []
    service.events.subscribe(received.append)
    return received
