# api/blogs.py
"""
Blog API: public published view and admin-only management
"""

from flask import Blueprint, current_app, jsonify, request
import logging

from core.blog_store import PostStatus, is_publish_transition
from core.errors import ValidationError
from middleware.security import require_admin
from tasks.notifications import schedule_post_notification

blogs_bp = Blueprint('blogs', __name__)
logger = logging.getLogger(__name__)


def _json_object():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object.')
    return data


@blogs_bp.route('/blogs', methods=['GET'])
def list_published():
    return jsonify(current_app.blog_store.list_published())


@blogs_bp.route('/blogs/<post_id>', methods=['GET'])
def get_published(post_id):
    return jsonify(current_app.blog_store.get_published(post_id))


@blogs_bp.route('/admin/blogs', methods=['GET'])
@require_admin
def list_all():
    return jsonify(current_app.blog_store.list_all())


@blogs_bp.route('/admin/blogs/<post_id>', methods=['GET'])
@require_admin
def get_any(post_id):
    return jsonify(current_app.blog_store.get(post_id))


@blogs_bp.route('/blogs', methods=['POST'])
@require_admin
def create():
    post = current_app.blog_store.create(_json_object())

    if post['status'] == PostStatus.PUBLISHED.value:
        schedule_post_notification(post)

    return jsonify({'success': True, 'message': 'Blog post created', 'id': post['id']}), 201


@blogs_bp.route('/blogs/<post_id>', methods=['PUT'])
@require_admin
def update(post_id):
    post, previous_status = current_app.blog_store.update(post_id, _json_object())

    if is_publish_transition(previous_status, post):
        schedule_post_notification(post)

    return jsonify({'success': True, 'message': 'Blog post updated'})


@blogs_bp.route('/blogs/<post_id>', methods=['DELETE'])
@require_admin
def delete(post_id):
    current_app.blog_store.delete(post_id)
    return jsonify({'success': True, 'message': 'Blog post deleted'})
