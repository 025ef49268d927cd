"""
Test environment.

Settings are read once at import time, so the environment is prepared here
before any application module is imported.
"""

import os

os.environ.setdefault("PYTHON_ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("PUBLIC_BASE_URL", "https://school.example.com")
os.environ.setdefault("CERTIFICATE_UPLOAD_DIR", "uploads/test-certificates")
