"""
Draft/Active bracket mode with synchronous change notification.
"""
import logging
from typing import Callable, List

logger = logging.getLogger(__name__)

MODE_DRAFT = 'draft'
MODE_ACTIVE = 'active'


class ModeController:
    """
    Holds the bracket mode. False (the default) is Draft, True is Active.

    set_mode never fails and always notifies, even when the mode is unchanged.
    """

    def __init__(self, is_active: bool = False):
        self._is_active = bool(is_active)
        self._listeners: List[Callable] = []

    def is_active(self) -> bool:
        return self._is_active

    def is_draft(self) -> bool:
        return not self._is_active

    @property
    def mode_string(self) -> str:
        return MODE_ACTIVE if self._is_active else MODE_DRAFT

    def set_mode(self, is_active: bool):
        self._is_active = bool(is_active)
        logger.info(f'Bracket mode set to {self.mode_string}')
        self._notify_change('bracketMode')

    def subscribe(self, listener: Callable) -> Callable:
        """Register listener(event); returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify_change(self, change_type: str):
        event = {'changeType': change_type, 'bracketMode': self._is_active}
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception(f'Mode change listener {listener!r} failed')

    def __repr__(self):
        return f"ModeController(mode={self.mode_string}, listeners={len(self._listeners)})"


def is_active_mode_string(mode: str) -> bool:
    return mode == MODE_ACTIVE
