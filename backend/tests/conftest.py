import os

# must be set before app.settings is imported
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("PERSIST_SESSIONS", "true")
os.environ.setdefault("ORIGIN", "http://localhost:5173")
