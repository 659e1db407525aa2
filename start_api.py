#!/usr/bin/env python3
"""
Prepare storage (data dir or SQL tables, using the same settings as the app), then uvicorn.
"""
import os
import sys

# 1) Build stores once so JSON files / tables exist before the first request
from deposit_hold.core.config import settings
from deposit_hold.storage.registry import get_stores

get_stores()

# 2) Start uvicorn (replace current process)
port = os.getenv("PORT", "4242")
os.execv(
    sys.executable,
    [sys.executable, "-m", "uvicorn", "deposit_hold.main:app", "--host", "0.0.0.0", "--port", port,
     "--log-level", settings.LOG_LEVEL.lower()],
)
