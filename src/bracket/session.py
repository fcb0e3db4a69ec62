"""
Bracket editing session.

A BracketSession owns the current competitor slots and the bracket generated
from them. It consults an injected ModeController before structural edits,
keeps the local record up to date, and hands submissions to whatever
submitter it was given (a BracketClient or a BracketArchive).
"""
import logging
from datetime import datetime, timezone
from typing import Optional, Sequence

from bracket import engine
from bracket.errors import EditNotAllowedError, InvalidInputError, SubmissionError
from bracket.mode import ModeController, is_active_mode_string
from bracket.models import Bracket
from bracket.storage import BRACKET_TYPE

logger = logging.getLogger(__name__)


class BracketSession:
    def __init__(self, mode: ModeController, store=None, submitter=None):
        self.mode = mode
        self.store = store
        self.submitter = submitter
        self.competitors = []
        self.bracket_data: Optional[Bracket] = None
        self.last_saved = None
        self._unsubscribe = mode.subscribe(self._handle_mode_change)

    @property
    def is_draft_mode(self) -> bool:
        return self.mode.is_draft()

    def close(self):
        """Stop listening to the mode controller."""
        self._unsubscribe()

    def _handle_mode_change(self, event):
        if event.get('changeType') != 'bracketMode':
            return
        logger.debug(f'Session switched to {"active" if event["bracketMode"] else "draft"} mode')
        if self.bracket_data is not None:
            self.save()

    def _require_draft(self, action: str):
        if not self.is_draft_mode:
            raise EditNotAllowedError(f'Cannot {action} while the bracket is in Active mode')

    def _apply(self, slots):
        # Generate before assigning so a failure leaves the session untouched
        bracket = engine.generate_bracket(slots)
        self.competitors = slots
        self.bracket_data = bracket
        self.save()
        return bracket

    def initialize_bracket(self, names: Sequence[str]) -> Bracket:
        """Start a new bracket from scratch, padded with byes."""
        self._require_draft('start a new bracket')
        return self._apply(engine.build_slots(names))

    def add_competitors(self, names: Sequence[str]) -> Bracket:
        self._require_draft('add competitors')
        slots = engine.add_competitors(self.competitors, names)
        added = engine.count_competitors(slots) - engine.count_competitors(self.competitors)
        logger.info(f'Added {added} competitor(s)')
        return self._apply(slots)

    def move_participant(self, source_name: str, target_name: Optional[str] = None,
                         target_index: Optional[int] = None) -> Bracket:
        self._require_draft('move competitors')
        slots = engine.move_or_swap_participant(
            self.competitors, source_name, target_name=target_name, target_index=target_index)
        return self._apply(slots)

    def move_slot(self, source_index: int, target_index: int) -> Bracket:
        self._require_draft('move competitors')
        return self._apply(engine.move_or_swap_slot(self.competitors, source_index, target_index))

    def validate_bracket(self):
        return engine.validate_bracket(self.bracket_data)

    def to_record(self) -> dict:
        return {
            'bracketData': self.bracket_data.to_dict() if self.bracket_data else None,
            'competitors': list(self.competitors),
            'mode': self.mode.mode_string,
            'timestamp': datetime.now(timezone.utc).isoformat(),
        }

    def submission_payload(self) -> dict:
        return {
            'bracket_type': BRACKET_TYPE,
            'participants': [name for name in self.competitors if name is not None],
            'bracket_data': self.bracket_data.to_dict() if self.bracket_data else None,
            'mode': self.mode.mode_string,
        }

    def save(self):
        if self.store is None or self.bracket_data is None:
            return
        record = self.to_record()
        self.store.save(record)
        self.last_saved = record['timestamp']

    def reset(self):
        """Drop the bracket and its local record; back to an empty Draft bracket."""
        self._fall_back()
        if self.store is not None:
            self.store.clear()
        self.last_saved = None

    def _fall_back(self):
        self.competitors = []
        self.bracket_data = None
        self.mode.set_mode(False)

    def load(self) -> bool:
        """
        Restore competitors and mode from the local store.

        The bracket is regenerated from the stored competitors; stored
        bracketData is only compared against it. Missing or unreadable state
        is logged and the session falls back to an empty bracket in Draft
        mode. Returns True if prior state was restored.
        """
        record = self.store.load() if self.store is not None else None
        if not record:
            self._fall_back()
            return False
        try:
            competitors = list(record.get('competitors') or [])
            bracket = engine.generate_bracket(competitors) if competitors else None
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.error(f'Error loading bracket state: {e}')
            self._fall_back()
            return False

        stored = record.get('bracketData')
        if bracket is not None and isinstance(stored, dict) and stored.get('matches') != bracket.to_dict()['matches']:
            logger.warning('Stored bracket data does not match competitors, regenerated from competitors')

        self.competitors = competitors
        self.bracket_data = bracket
        self.mode.set_mode(is_active_mode_string(record.get('mode')))
        return True

    def confirm_changes(self) -> dict:
        """
        Validate, save locally, then submit to the server.

        A failed submission is reported in the result; the in-memory bracket
        and the local record are kept either way.
        """
        is_valid, errors = self.validate_bracket()
        if not is_valid:
            return {'success': False, 'errors': errors}

        self.save()
        result = {'success': True, 'saved': True, 'submitted': False, 'errors': []}
        if self.submitter is None:
            return result
        try:
            result['response'] = self.submitter.submit(self.submission_payload())
            result['submitted'] = True
        except (SubmissionError, InvalidInputError) as e:
            logger.error(f'Error saving bracket: {e}')
            result['success'] = False
            result['errors'] = [f'{e}. Changes saved locally.']
        return result

    def __repr__(self):
        return (f"BracketSession(competitors={engine.count_competitors(self.competitors)}, "
                f"slots={len(self.competitors)}, mode={self.mode.mode_string})")
