"""Application configuration and environment settings"""
from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Royalty formula weights, applied to (compute hours, data quality, model impact)
COMPUTE_HOURS_WEIGHT = 40
DATA_QUALITY_WEIGHT = 35
MODEL_IMPACT_WEIGHT = 25
WEIGHT_DENOMINATOR = 100

# Shares are expressed in basis points (1/10000 of the reward pool)
BASIS_POINTS = 10_000

# Oracle cleartext is a sequence of big-endian 32-byte words
WORD_SIZE = 32

class Settings(BaseSettings):
    """Application settings loaded from environment variables"""
    # Storage
    DATABASE_URL: str = Field("sqlite:///fhe_royalties.db", description="SQLAlchemy database URL")

    # Reveal settings
    REQUEST_TIMEOUT_SECONDS: int = Field(3600, description="Seconds before a pending oracle request may be swept")
    MAX_METRIC_VALUE: int = Field(2**32 - 1, description="Upper bound for each decrypted metric")
    CONTRIBUTOR_KEY_SIZE: int = Field(32, description="Size in bytes of a contributor pseudonym")

    # Reference oracle keys, see scripts/generate_oracle_keys.py
    CIPHER_KEY: Optional[str] = Field(None, description="Fernet key used by the reference cipher suite")
    ORACLE_SIGNING_KEY: Optional[str] = Field(None, description="Ed25519 private key (hex) of the reference oracle")

    LOG_LEVEL: str = Field("INFO", description="Root logging level")

    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=True,
        extra='ignore'
    )

settings = Settings()
