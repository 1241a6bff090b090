import os
from pathlib import Path

from dotenv import load_dotenv
import pytest

# Use the in-memory database for anything that imports app.database
os.environ.setdefault("PYTEST_RUN", "1")

# Load environment variables for tests
load_dotenv(Path(__file__).resolve().parents[1] / '.env.test')


@pytest.fixture(autouse=True)
def clear_dependency_overrides():
    """Drop any get_db override a test installed on the shared app."""
    yield
    from app.main import app

    app.dependency_overrides.clear()
