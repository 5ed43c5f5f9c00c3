import os

# Settings are read at import time; pin them before the app is imported
os.environ.setdefault("RATE_LIMIT_PER_MINUTE", "100000")
os.environ.setdefault("MAX_INPUT_CHARS", "1000")
os.environ.setdefault("HEARTBEAT_INTERVAL_SECONDS", "0")
os.environ.setdefault("METRICS_NAMESPACE", "myapp")

import pytest
from fastapi.testclient import TestClient

from bracket_api.public.main import app


@pytest.fixture
def client():
    return TestClient(app)

