import os

# Default to an in-memory SQLite database and a fixed signing key for tests
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "x" * 32)
os.environ.setdefault("BASE_URL", "http://qr.test")
os.environ.setdefault("LOG_LEVEL", "WARNING")
