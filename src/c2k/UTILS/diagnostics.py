"""
Accumulates the non-fatal warnings of one conversion pass.
"""
from typing import Dict, List

from .logging import get_logger

_log = get_logger("diagnostics")


class WarningLog:
    """
    Collects warnings for a single pass, reporting each key once.

    An instance is created per pass, or passed in by the caller to share it
    across several passes; nothing is kept at module level.
    """

    def __init__(self):
        self._messages: Dict[str, str] = {}

    def warn(self, key: str, message: str, **fields) -> bool:
        """
        Records a warning unless one with the same key was already recorded.

        :param key: Deduplication key, e.g. 'user:web'.
        :param message: Human readable warning.
        :return: True if the warning was new.
        """
        if key in self._messages:
            return False
        self._messages[key] = message
        _log.warning(message, key=key, **fields)
        return True

    @property
    def messages(self) -> List[str]:
        return list(self._messages.values())

    def __contains__(self, key: str) -> bool:
        return key in self._messages

    def __len__(self) -> int:
        return len(self._messages)
