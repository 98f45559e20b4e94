"""
Application configuration for api-candle-indexer.

Centralizes environment variables using python-dotenv.

Note:
- Handlers never read the environment directly. `IndexerConfig` is built once
  from these settings at startup and injected into the dispatcher.
- The .env contains Mongo connection, RPC endpoint and network addresses.
"""

import os
from dotenv import load_dotenv

load_dotenv()


class Settings:
    """
    Configuration settings for the api-candle-indexer service.
    """

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    APP_NAME: str = os.getenv("APP_NAME", "api-candle-indexer")

    # Storage
    STORE_BACKEND: str = os.getenv("STORE_BACKEND", "mongodb").lower()
    MONGODB_URL: str = os.getenv("MONGODB_URL", "mongodb://mongo-candle-indexer:27017")
    MONGODB_DB_NAME: str = os.getenv("MONGODB_DB_NAME", "api_candle_indexer")

    # On-chain reads
    RPC_URL: str = os.getenv("RPC_URL", "http://localhost:8545")
    RPC_TIMEOUT_S: float = float(os.getenv("RPC_TIMEOUT_S", "20"))

    # Network addresses (lowercased by IndexerConfig)
    TREASURY_ADDRESS: str = os.getenv("TREASURY_ADDRESS", "")
    LMKT_ADDRESS: str = os.getenv("LMKT_ADDRESS", "")
    COLLATERAL_ADDRESS: str = os.getenv("COLLATERAL_ADDRESS", "")

    # Candles
    CANDLE_INTERVALS: str = os.getenv("CANDLE_INTERVALS", "60,300,900,3600,14400,86400")
    BACKFILL_MAX_STEPS: int = int(os.getenv("BACKFILL_MAX_STEPS", "1000"))
    FUTURE_TOLERANCE_S: int = int(os.getenv("FUTURE_TOLERANCE_S", "300"))

    # Retry policy for on-chain reads
    RETRY_MAX_ATTEMPTS: int = int(os.getenv("RETRY_MAX_ATTEMPTS", "3"))
    RETRY_INITIAL_DELAY_MS: int = int(os.getenv("RETRY_INITIAL_DELAY_MS", "1000"))
    RETRY_BACKOFF_MULTIPLIER: float = float(os.getenv("RETRY_BACKOFF_MULTIPLIER", "2.0"))

    # Ingestion workers
    INGESTION_WORKERS: int = int(os.getenv("INGESTION_WORKERS", "6"))


settings = Settings()
