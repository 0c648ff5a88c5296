# core/session_tokens.py
"""
One-time session tokens gating contact form submission.

Tokens live in process memory only and are never expired; a token is spent by
the first successful submission that presents it.
"""

import logging
import threading
import time
import uuid
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class TokenRegistry:
    """Process-wide mapping of issued token -> issuance time"""

    def __init__(self, clock=time.time):
        self._clock = clock
        self._tokens: Dict[str, float] = {}
        self._lock = threading.Lock()

    def issue(self) -> str:
        token = str(uuid.uuid4())
        with self._lock:
            self._tokens[token] = self._clock()
        logger.debug(f"Issued session token {token[:8]}...")
        return token

    def issued_at(self, token: Optional[str]) -> Optional[float]:
        if not isinstance(token, str) or not token:
            return None
        with self._lock:
            return self._tokens.get(token)

    def __contains__(self, token) -> bool:
        return self.issued_at(token) is not None

    def consume(self, token: Optional[str]) -> bool:
        """Remove the token; True only for the caller that actually removed it"""
        if not isinstance(token, str) or not token:
            return False
        with self._lock:
            return self._tokens.pop(token, None) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._tokens)
