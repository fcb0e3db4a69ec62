"""
Persistence for bracket state.

LocalStateStore keeps the editing session's record as a keyed blob in a YAML
file. BracketArchive is the server side of a submission, and BracketClient
sends submissions to a remote server over HTTP.
"""
import logging
import os
from datetime import datetime
from typing import Optional

import requests
import yaml
from filelock import FileLock

from bracket.errors import InvalidInputError, SubmissionError
from bracket.mode import MODE_ACTIVE, MODE_DRAFT

logger = logging.getLogger(__name__)

STATE_KEY = 'tournament_bracket_state'
BRACKET_TYPE = 'single_elimination'
UPDATE_BRACKET_PATH = '/tournaments/update_bracket'


def _read_yaml(path):
    with open(path, 'r', encoding='utf-8') as f:
        return yaml.safe_load(f)


def _write_yaml(path, data):
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        yaml.dump(data, f, default_flow_style=False, allow_unicode=True)


class LocalStateStore:
    """Single-file key/value store for the local persistence record."""

    def __init__(self, path: str, key: str = STATE_KEY):
        self.path = path
        self.key = key
        self._lock = FileLock(f'{path}.lock', timeout=10)

    def _load_all(self) -> dict:
        if not os.path.exists(self.path):
            return {}
        data = _read_yaml(self.path)
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ValueError(f'{self.path} does not contain a mapping')
        return data

    def load(self) -> Optional[dict]:
        """Return the stored record, or None when missing or unreadable."""
        if not os.path.exists(self.path):
            return None
        try:
            with self._lock:
                record = self._load_all().get(self.key)
        except (OSError, ValueError, yaml.YAMLError) as e:
            logger.error(f'Error loading bracket state from {self.path}: {e}')
            return None
        if record is not None and not isinstance(record, dict):
            logger.error(f'Ignoring malformed bracket state under "{self.key}" in {self.path}')
            return None
        return record

    def save(self, record: dict):
        os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
        with self._lock:
            try:
                data = self._load_all()
            except (ValueError, yaml.YAMLError) as e:
                logger.warning(f'Overwriting unreadable state file {self.path}: {e}')
                data = {}
            data[self.key] = record
            _write_yaml(self.path, data)

    def clear(self):
        if not os.path.exists(self.path):
            return
        with self._lock:
            try:
                data = self._load_all()
            except (ValueError, yaml.YAMLError):
                data = {}
            if data.pop(self.key, None) is not None:
                _write_yaml(self.path, data)


def validate_submission(payload) -> dict:
    """Check a server submission payload, returning it unchanged if valid."""
    if not isinstance(payload, dict):
        raise InvalidInputError('Submission must be a JSON object')
    if payload.get('bracket_type') != BRACKET_TYPE:
        raise InvalidInputError(f'Unsupported bracket type: {payload.get("bracket_type")}')
    participants = payload.get('participants')
    if not isinstance(participants, list) or any(not isinstance(p, str) for p in participants):
        raise InvalidInputError('participants must be a list of names')
    if not isinstance(payload.get('bracket_data'), dict):
        raise InvalidInputError('bracket_data is required')
    if payload.get('mode') not in (MODE_DRAFT, MODE_ACTIVE):
        raise InvalidInputError(f'Unknown mode: {payload.get("mode")}')
    return payload


class BracketArchive:
    """Server-side store for the latest submitted bracket (state-replacing)."""

    def __init__(self, path: str):
        self.path = path
        self._lock = FileLock(f'{path}.lock', timeout=10)

    def submit(self, payload: dict) -> dict:
        validate_submission(payload)
        entry = dict(payload)
        entry['received'] = datetime.now().isoformat()
        os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
        with self._lock:
            _write_yaml(self.path, entry)
        logger.info(f'Stored bracket with {len(payload["participants"])} participants in {self.path}')
        return {'success': True, 'participants': len(payload['participants'])}

    def load(self) -> Optional[dict]:
        if not os.path.exists(self.path):
            return None
        with self._lock:
            return _read_yaml(self.path)


class BracketClient:
    """Sends submission payloads to a remote bracket server."""

    def __init__(self, base_url: str, timeout: float = 10, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()

    def submit(self, payload: dict) -> dict:
        url = f'{self.base_url}{UPDATE_BRACKET_PATH}'
        try:
            response = self.session.post(
                url,
                json=payload,
                headers={'X-Requested-With': 'XMLHttpRequest'},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise SubmissionError(f'Failed to save bracket: {e}') from e

        if not response.ok:
            raise SubmissionError(
                f'Failed to save bracket: {response.status_code} {response.reason}',
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError:
            return {}
