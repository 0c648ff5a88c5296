# api/auth.py
"""
Admin Authentication API
"""

from flask import Blueprint, current_app, jsonify, request
import logging

from middleware.security import limiter

auth_bp = Blueprint('auth', __name__)
logger = logging.getLogger(__name__)


@auth_bp.route('/admin/login', methods=['POST'])
@limiter.limit("5 per minute")
def login():
    """
    Exchange the admin username/password for a one-hour bearer credential
    """
    data = request.get_json(silent=True) or {}
    username = data.get('username', '')
    password = data.get('password', '')

    logger.info(f"Admin login attempt from {request.remote_addr}")
    token = current_app.admin_sessions.login(username, password)

    return jsonify({'success': True, 'message': 'Login successful', 'token': token})
