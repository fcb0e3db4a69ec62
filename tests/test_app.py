"""
Unit tests for the Flask web application.
"""
import pytest
import sys
import os
import io
from unittest.mock import Mock

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from app import create_app
from bracket.errors import SubmissionError


class TestBracketAPI:
    """Tests for bracket editing endpoints."""

    def test_get_empty_bracket(self, client):
        response = client.get('/api/bracket')
        data = response.get_json()
        assert response.status_code == 200
        assert data['competitors'] == []
        assert data['bracket_data'] is None
        assert data['mode'] == 'draft'

    def test_initialize_bracket(self, client):
        response = client.post('/api/bracket/initialize', json={'names': ['A', 'B', 'C']})
        data = response.get_json()
        assert response.status_code == 200
        assert data['competitors'] == ['A', 'B', 'C', None]
        assert len(data['bracket_data']['matches']) == 3
        assert [r['name'] for r in data['rounds']] == ['Semifinal', 'Final']
        assert data['rounds'][1] == {'name': 'Final', 'round': 2, 'matches': [3]}

    def test_rounds_listed_in_play_order(self, client, eight_names):
        response = client.post('/api/bracket/initialize', json={'names': eight_names})
        rounds = response.get_json()['rounds']
        assert [r['name'] for r in rounds] == ['Quarterfinal', 'Semifinal', 'Final']
        assert [r['round'] for r in rounds] == [1, 2, 3]
        assert rounds[0]['matches'] == [1, 2, 3, 4]

    def test_add_competitors_from_text(self, client):
        client.post('/api/bracket/initialize', json={'names': ['A', 'C']})
        response = client.post('/api/bracket/competitors', json={'text': 'D\n\n  E  \nA'})
        data = response.get_json()
        assert response.status_code == 200
        assert data['competitors'] == ['A', 'C', 'D', 'E']
        assert data['message'] == 'Added 2 competitor(s)'

    def test_add_no_valid_names(self, client):
        client.post('/api/bracket/initialize', json={'names': ['A', 'B']})
        response = client.post('/api/bracket/competitors', json={'names': ['', '  ']})
        assert response.status_code == 400
        assert response.get_json()['success'] is False

    def test_swap_participants(self, client):
        client.post('/api/bracket/initialize', json={'names': ['A', 'B', 'C', 'D']})
        response = client.post('/api/bracket/move', json={'source': 'A', 'target': 'D'})
        assert response.get_json()['competitors'] == ['D', 'B', 'C', 'A']

    def test_move_to_empty_slot(self, client):
        client.post('/api/bracket/initialize', json={'names': ['A', 'B', 'C']})
        response = client.post('/api/bracket/move', json={'source': 'B', 'target_index': 3})
        assert response.get_json()['competitors'] == ['A', None, 'C', 'B']

    def test_move_by_slot_index(self, client):
        client.post('/api/bracket/initialize', json={'names': ['A', 'B', 'C']})
        response = client.post('/api/bracket/move', json={'source_index': 0, 'target_index': 3})
        assert response.get_json()['competitors'] == [None, 'B', 'C', 'A']

    def test_move_bad_index(self, client):
        client.post('/api/bracket/initialize', json={'names': ['A', 'B']})
        response = client.post('/api/bracket/move', json={'source_index': 0, 'target_index': 'x'})
        assert response.status_code == 400

    def test_move_unknown_participant(self, client):
        client.post('/api/bracket/initialize', json={'names': ['A', 'B']})
        response = client.post('/api/bracket/move', json={'source': 'Z', 'target': 'A'})
        assert response.status_code == 404
        assert client.get('/api/bracket').get_json()['competitors'] == ['A', 'B']

    def test_active_mode_blocks_edits(self, client):
        client.post('/api/bracket/initialize', json={'names': ['A', 'B']})
        response = client.post('/api/bracket/mode', json={'active': True})
        assert response.get_json() == {'success': True, 'mode': 'active', 'bracketMode': True}

        response = client.post('/api/bracket/move', json={'source': 'A', 'target': 'B'})
        assert response.status_code == 409

        client.post('/api/bracket/mode', json={'mode': 'draft'})
        response = client.post('/api/bracket/move', json={'source': 'A', 'target': 'B'})
        assert response.status_code == 200

    def test_mode_string_values(self, client):
        client.post('/api/bracket/initialize', json={'names': ['A', 'B']})
        response = client.post('/api/bracket/mode', json={'active': 'false'})
        assert response.get_json()['mode'] == 'draft'
        response = client.post('/api/bracket/mode', json={'active': 'true'})
        assert response.get_json()['mode'] == 'active'

    def test_mode_rejects_unknown_value(self, client):
        response = client.post('/api/bracket/mode', json={'active': 'maybe'})
        assert response.status_code == 400
        assert client.get('/api/bracket').get_json()['mode'] == 'draft'

    def test_reset(self, app, client):
        client.post('/api/bracket/initialize', json={'names': ['A', 'B', 'C']})
        client.post('/api/bracket/mode', json={'active': True})

        response = client.post('/api/bracket/reset')
        data = response.get_json()
        assert response.status_code == 200
        assert data['competitors'] == []
        assert data['rounds'] == []
        assert data['mode'] == 'draft'

        restarted = create_app(data_dir=app.config['DATA_DIR'], server_url='')
        with restarted.test_client() as other:
            assert other.get('/api/bracket').get_json()['competitors'] == []

    def test_validate(self, client):
        assert client.get('/api/bracket/validate').get_json()['isValid'] is False
        client.post('/api/bracket/initialize', json={'names': ['A', 'B']})
        assert client.get('/api/bracket/validate').get_json() == {'isValid': True, 'errors': []}


class TestConfirmAndSubmit:
    """Tests for confirmation and the server submission endpoint."""

    def test_confirm_archives_bracket(self, app, client):
        client.post('/api/bracket/initialize', json={'names': ['A', 'B', 'C']})
        response = client.post('/api/bracket/confirm')
        assert response.status_code == 200
        stored = app.extensions['bracket_archive'].load()
        assert stored['participants'] == ['A', 'B', 'C']
        assert stored['mode'] == 'draft'

    def test_confirm_invalid_bracket(self, client):
        response = client.post('/api/bracket/confirm')
        assert response.status_code == 422

    def test_confirm_submission_failure(self, tmp_path):
        submitter = Mock()
        submitter.submit.side_effect = SubmissionError('Failed to save bracket: 500 Internal Server Error', 500)
        flask_app = create_app(data_dir=str(tmp_path), submitter=submitter)
        with flask_app.test_client() as client:
            client.post('/api/bracket/initialize', json={'names': ['A', 'B']})
            response = client.post('/api/bracket/confirm')
            assert response.status_code == 502
            assert client.get('/api/bracket').get_json()['competitors'] == ['A', 'B']

    def test_update_bracket_endpoint(self, app, client):
        payload = {
            'bracket_type': 'single_elimination',
            'participants': ['A', 'B'],
            'bracket_data': {'matches': [], 'participants': []},
            'mode': 'active',
        }
        response = client.post('/tournaments/update_bracket', json=payload)
        assert response.get_json() == {'success': True, 'participants': 2}
        assert app.extensions['bracket_archive'].load()['mode'] == 'active'

    def test_update_bracket_rejects_bad_payload(self, client):
        response = client.post('/tournaments/update_bracket', json={'bracket_type': 'round_robin'})
        assert response.status_code == 400


class TestPersistenceAcrossApps:
    """The local record survives an app restart."""

    def test_state_restored(self, tmp_path):
        data_dir = str(tmp_path / "data")
        first = create_app(data_dir=data_dir, server_url='')
        with first.test_client() as client:
            client.post('/api/bracket/initialize', json={'names': ['A', 'B', 'C']})
            client.post('/api/bracket/mode', json={'active': True})

        second = create_app(data_dir=data_dir, server_url='')
        with second.test_client() as client:
            data = client.get('/api/bracket').get_json()
        assert data['competitors'] == ['A', 'B', 'C', None]
        assert data['mode'] == 'active'

    def test_corrupt_state_starts_empty(self, tmp_path):
        (tmp_path / "bracket_state.yaml").write_text("tournament_bracket_state: [oops\n")
        flask_app = create_app(data_dir=str(tmp_path), server_url='')
        with flask_app.test_client() as client:
            data = client.get('/api/bracket').get_json()
        assert data['competitors'] == []
        assert data['mode'] == 'draft'


class TestCSV:
    """Tests for competitor CSV import/export."""

    def test_export(self, client):
        client.post('/api/bracket/initialize', json={'names': ['A', 'B', 'C']})
        response = client.get('/tournaments.csv')
        assert response.mimetype == 'text/csv'
        assert response.data.decode('utf-8') == "seed,name\n1,A\n2,B\n3,C\n4,\n"

    def test_import(self, client):
        data = {'file': (io.BytesIO(b"name\nAlpha\nBravo\nCharlie\n"), 'competitors.csv')}
        response = client.post('/tournaments/import', data=data, content_type='multipart/form-data')
        assert response.status_code == 200
        assert response.get_json()['competitors'] == ['Alpha', 'Bravo', 'Charlie', None]

    def test_import_without_file(self, client):
        response = client.post('/tournaments/import', data={}, content_type='multipart/form-data')
        assert response.status_code == 400

    def test_import_empty_csv(self, client):
        data = {'file': (io.BytesIO(b"name\n"), 'competitors.csv')}
        response = client.post('/tournaments/import', data=data, content_type='multipart/form-data')
        assert response.status_code == 400
