"""Root conftest — shared test configuration."""

import os

# Tests never reach a real node or a real database
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("RPC_URL", "http://127.0.0.1:8545")
os.environ.setdefault("INGESTOR_ENABLED", "false")
os.environ.setdefault("LOG_FORMAT", "text")
