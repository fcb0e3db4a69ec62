"""
Shared pytest fixtures for bracket editor tests.

Running tests:
    pytest tests/
"""
import pytest
import sys
import os

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from bracket.mode import ModeController
from bracket.session import BracketSession
from bracket.storage import LocalStateStore, BracketArchive


@pytest.fixture
def mode():
    """A fresh mode controller (Draft)."""
    return ModeController()


@pytest.fixture
def state_store(tmp_path):
    """Local state store backed by a temporary YAML file."""
    return LocalStateStore(str(tmp_path / "bracket_state.yaml"))


@pytest.fixture
def archive(tmp_path):
    """Server-side bracket archive in a temporary directory."""
    return BracketArchive(str(tmp_path / "bracket.yaml"))


@pytest.fixture
def session(mode, state_store, archive):
    """Editing session wired to temporary storage."""
    s = BracketSession(mode=mode, store=state_store, submitter=archive)
    yield s
    s.close()


@pytest.fixture
def app(tmp_path):
    """Flask app using a temporary data directory and local archive."""
    from app import create_app
    flask_app = create_app(data_dir=str(tmp_path / "data"), server_url='')
    flask_app.config['TESTING'] = True
    return flask_app


@pytest.fixture
def client(app):
    """Create a test client."""
    with app.test_client() as client:
        yield client


@pytest.fixture
def eight_names():
    return ["Alpha", "Bravo", "Charlie", "Delta", "Echo", "Foxtrot", "Golf", "Hotel"]
