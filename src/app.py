"""
Flask web application for the Tournament Bracket Editor.
"""
import os
import logging
from flask import Flask, request, jsonify, Response
from bracket.csv_io import competitors_from_csv, competitors_to_csv
from bracket.engine import get_rounds
from bracket.errors import (
    BracketError,
    EditNotAllowedError,
    InvalidInputError,
    NoValidNamesError,
    ParticipantNotFoundError,
)
from bracket.mode import ModeController
from bracket.session import BracketSession
from bracket.storage import BracketArchive, BracketClient, LocalStateStore, UPDATE_BRACKET_PATH

BASE_DIR = os.path.dirname(os.path.dirname(__file__))
DATA_DIR = os.environ.get('TOURNAMENT_DATA_DIR', os.path.join(BASE_DIR, 'data'))
SERVER_URL = os.environ.get('BRACKET_SERVER_URL')
SUBMIT_TIMEOUT = float(os.environ.get('BRACKET_SUBMIT_TIMEOUT', '10'))

STATE_FILENAME = 'bracket_state.yaml'
ARCHIVE_FILENAME = 'bracket.yaml'
MAX_UPLOAD_SIZE = 1 * 1024 * 1024  # 1 MB

# Error type -> HTTP status for JSON error responses
ERROR_STATUS = {
    InvalidInputError: 400,
    NoValidNamesError: 400,
    ParticipantNotFoundError: 404,
    EditNotAllowedError: 409,
}


def _error_response(error: BracketError):
    status = 400
    for error_type, code in ERROR_STATUS.items():
        if isinstance(error, error_type):
            status = code
            break
    return jsonify({'success': False, 'error': str(error)}), status


def _bracket_response(session: BracketSession, **extra):
    data = {
        'success': True,
        'competitors': session.competitors,
        'mode': session.mode.mode_string,
        'bracket_data': session.bracket_data.to_dict() if session.bracket_data else None,
        'rounds': [],
    }
    if session.bracket_data is not None:
        # A list, since jsonify sorts object keys
        data['rounds'] = [
            {'name': name, 'round': matches[0].round, 'matches': [m.id for m in matches]}
            for name, matches in get_rounds(session.bracket_data).items()
        ]
    data.update(extra)
    return jsonify(data)


def _parse_names(data) -> list:
    """Accept either a list of names or newline-separated text."""
    names = data.get('names')
    if names is None:
        names = data.get('competitors')
    if isinstance(names, str):
        names = names.split('\n')
    if names is None:
        text = data.get('text', '')
        names = text.split('\n') if text else []
    return names


def _bool_field(data, key) -> bool:
    value = data[key]
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ('true', 'false'):
        return value.strip().lower() == 'true'
    raise InvalidInputError(f'{key} must be true or false')


def _int_field(data, key) -> int:
    try:
        return int(data[key])
    except (KeyError, TypeError, ValueError):
        raise InvalidInputError(f'{key} must be an integer')


def create_app(data_dir=None, server_url=None, mode=None, submitter=None):
    """
    Build the Flask app and its editing session.

    The session, its mode controller and its submitter are owned by the app
    and reachable through app.extensions['bracket_session'].
    """
    app = Flask(__name__)
    app.config['MAX_CONTENT_LENGTH'] = MAX_UPLOAD_SIZE

    data_dir = data_dir or DATA_DIR
    server_url = server_url if server_url is not None else SERVER_URL
    app.config['DATA_DIR'] = data_dir

    archive = BracketArchive(os.path.join(data_dir, ARCHIVE_FILENAME))
    if submitter is None:
        if server_url:
            submitter = BracketClient(server_url, timeout=SUBMIT_TIMEOUT)
        else:
            submitter = archive

    session = BracketSession(
        mode=mode or ModeController(),
        store=LocalStateStore(os.path.join(data_dir, STATE_FILENAME)),
        submitter=submitter,
    )
    if session.load():
        app.logger.info(f'Restored bracket with {len(session.competitors)} slots from {data_dir}')
    app.extensions['bracket_session'] = session
    app.extensions['bracket_archive'] = archive

    @app.errorhandler(BracketError)
    def handle_bracket_error(error):
        app.logger.warning(f'{request.path}: {error}')
        return _error_response(error)

    @app.route('/api/bracket', methods=['GET'])
    def api_get_bracket():
        """Current competitors, mode and generated bracket."""
        return _bracket_response(session, timestamp=session.last_saved)

    @app.route('/api/bracket/initialize', methods=['POST'])
    def api_initialize_bracket():
        data = request.get_json(silent=True) or {}
        session.initialize_bracket(_parse_names(data))
        return _bracket_response(session)

    @app.route('/api/bracket/competitors', methods=['POST'])
    def api_add_competitors():
        """Add competitors (list, or one name per line) to the bracket."""
        data = request.get_json(silent=True) or {}
        before = len([c for c in session.competitors if c is not None])
        session.add_competitors(_parse_names(data))
        added = len([c for c in session.competitors if c is not None]) - before
        return _bracket_response(session, message=f'Added {added} competitor(s)')

    @app.route('/api/bracket/move', methods=['POST'])
    def api_move_participant():
        data = request.get_json(silent=True) or {}
        if 'source_index' in data:
            session.move_slot(_int_field(data, 'source_index'), _int_field(data, 'target_index'))
        else:
            target_index = _int_field(data, 'target_index') if data.get('target_index') is not None else None
            session.move_participant(
                (data.get('source') or '').strip(),
                target_name=data.get('target') or None,
                target_index=target_index,
            )
        return _bracket_response(session)

    @app.route('/api/bracket/mode', methods=['POST'])
    def api_set_mode():
        data = request.get_json(silent=True) or {}
        if 'active' in data:
            is_active = _bool_field(data, 'active')
        else:
            is_active = data.get('mode') == 'active'
        session.mode.set_mode(is_active)
        return jsonify({'success': True, 'mode': session.mode.mode_string, 'bracketMode': is_active})

    @app.route('/api/bracket/reset', methods=['POST'])
    def api_reset_bracket():
        """Discard the bracket and its local record, returning to an empty Draft bracket."""
        session.reset()
        app.logger.info('Bracket reset')
        return _bracket_response(session, message='Bracket reset')

    @app.route('/api/bracket/validate', methods=['GET'])
    def api_validate_bracket():
        is_valid, errors = session.validate_bracket()
        return jsonify({'isValid': is_valid, 'errors': errors})

    @app.route('/api/bracket/confirm', methods=['POST'])
    def api_confirm_bracket():
        """Validate, save locally and submit to the server."""
        result = session.confirm_changes()
        if result['success']:
            return jsonify(result)
        app.logger.warning(f'Bracket confirmation failed: {result["errors"]}')
        # Validation failures are never saved; submission failures are saved locally
        return jsonify(result), 502 if result.get('saved') else 422

    @app.route(UPDATE_BRACKET_PATH, methods=['POST'])
    def update_bracket():
        """Server-side endpoint replacing the stored bracket with the submission."""
        payload = request.get_json(silent=True)
        result = archive.submit(payload)
        return jsonify(result)

    @app.route('/tournaments.csv', methods=['GET'])
    def export_competitors():
        return Response(
            competitors_to_csv(session.competitors),
            mimetype='text/csv',
            headers={'Content-Disposition': 'attachment; filename=competitors.csv'}
        )

    @app.route('/tournaments/import', methods=['POST'])
    def import_competitors():
        """Start a new bracket from an uploaded CSV file."""
        upload = request.files.get('file')
        if upload is None or not upload.filename:
            return jsonify({'success': False, 'error': 'Please upload a CSV file.'}), 400
        try:
            text = upload.read().decode('utf-8-sig')
        except UnicodeDecodeError:
            return jsonify({'success': False, 'error': 'CSV file must be UTF-8 encoded.'}), 400
        session.initialize_bracket(competitors_from_csv(text))
        app.logger.info(f'Imported {len(session.bracket_data.participants)} competitors from {upload.filename}')
        return _bracket_response(session, message='Competitors imported successfully!')

    return app


app = create_app()


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    app.run(debug=True, port=5000)
