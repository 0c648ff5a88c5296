# core/subscriber_store.py
"""Newsletter subscriber list over a JSON file store."""

import logging
from typing import List

from core.errors import ConflictError, ValidationError
from core.json_store import JsonFileStore

logger = logging.getLogger(__name__)


class SubscriberStore:

    def __init__(self, store: JsonFileStore):
        self.store = store

    def list(self) -> List[str]:
        return self.store.get()

    def subscribe(self, email) -> str:
        email = (email or '').strip() if isinstance(email, str) else ''
        if not email:
            raise ValidationError('Email is required.')

        with self.store.transaction() as subscribers:
            if email in subscribers:
                raise ConflictError('This email is already subscribed.')
            subscribers.append(email)

        logger.info(f"New subscriber added ({len(subscribers)} total)")
        return email
