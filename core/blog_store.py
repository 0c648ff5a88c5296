# core/blog_store.py
"""
Blog post CRUD over a JSON file store.
"""

import logging
import uuid
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from core.errors import NotFoundError, ValidationError
from core.json_store import JsonFileStore

logger = logging.getLogger(__name__)

# Fields owned by the server; client-supplied values are ignored
PROTECTED_FIELDS = ('id', 'date')


class PostStatus(Enum):
    """Publication status of a blog post"""
    DRAFT = "draft"
    PUBLISHED = "published"


def _validate_status(fields: Dict[str, Any]) -> None:
    if 'status' not in fields:
        return
    valid = {s.value for s in PostStatus}
    if fields['status'] not in valid:
        raise ValidationError(f"Status must be one of: {', '.join(sorted(valid))}.")


def _client_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    if not isinstance(fields, dict):
        raise ValidationError('Blog post must be a JSON object.')
    return {k: v for k, v in fields.items() if k not in PROTECTED_FIELDS}


class BlogStore:
    """Post records kept as a flat JSON array, stored in insertion order"""

    def __init__(self, store: JsonFileStore, today=date.today):
        self.store = store
        self._today = today

    def list_all(self) -> List[Dict[str, Any]]:
        return self.store.get()

    def list_published(self) -> List[Dict[str, Any]]:
        return [
            post for post in self.store.get()
            if post.get('status') == PostStatus.PUBLISHED.value
        ]

    def get(self, post_id: str) -> Dict[str, Any]:
        for post in self.store.get():
            if post.get('id') == post_id:
                return post
        raise NotFoundError('Blog post not found')

    def get_published(self, post_id: str) -> Dict[str, Any]:
        post = self.get(post_id)
        if post.get('status') != PostStatus.PUBLISHED.value:
            raise NotFoundError('Blog post not found')
        return post

    def create(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Append a new post with a fresh id and today's date"""
        post = _client_fields(fields)
        _validate_status(post)
        post['id'] = str(uuid.uuid4())
        post['date'] = self._today().isoformat()
        post['status'] = post.get('status') or PostStatus.DRAFT.value

        with self.store.transaction() as posts:
            posts.append(post)

        logger.info(f"Created blog post {post['id']} ({post['status']})")
        return post

    def update(self, post_id: str, fields: Dict[str, Any]) -> Tuple[Dict[str, Any], Optional[str]]:
        """
        Shallow-merge fields over an existing post.

        Returns:
            Tuple of (updated post, status before the update)

        Raises:
            NotFoundError: no post has this id; the file is left untouched
        """
        changes = _client_fields(fields)
        _validate_status(changes)

        with self.store.transaction() as posts:
            for index, existing in enumerate(posts):
                if existing.get('id') == post_id:
                    previous_status = existing.get('status')
                    posts[index] = {**existing, **changes}
                    updated = posts[index]
                    break
            else:
                raise NotFoundError('Blog post not found')

        logger.info(f"Updated blog post {post_id} ({previous_status} -> {updated.get('status')})")
        return updated, previous_status

    def delete(self, post_id: str) -> None:
        with self.store.transaction() as posts:
            remaining = [post for post in posts if post.get('id') != post_id]
            if len(remaining) == len(posts):
                raise NotFoundError('Blog post not found')
            posts[:] = remaining

        logger.info(f"Deleted blog post {post_id}")


def is_publish_transition(previous_status: Optional[str], post: Dict[str, Any]) -> bool:
    """True when an update moved a post from draft to published"""
    return (previous_status == PostStatus.DRAFT.value
            and post.get('status') == PostStatus.PUBLISHED.value)
