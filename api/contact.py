# api/contact.py
"""
Contact form API: session token issuance and form submission
"""

from flask import Blueprint, current_app, jsonify, request
import logging

from middleware.security import limiter

contact_bp = Blueprint('contact', __name__)
logger = logging.getLogger(__name__)


@contact_bp.route('/token', methods=['GET'])
def issue_token():
    """Issue a one-time token the contact form must echo back"""
    token = current_app.token_registry.issue()
    return jsonify({'token': token})


@contact_bp.route('/send-email', methods=['POST'])
@limiter.limit("10 per minute")
def send_email():
    """
    Forward a contact form submission to the site operator.

    Accepts multipart or urlencoded form data with an optional `document` file,
    or a JSON body without attachment.
    """
    if request.is_json:
        form = request.get_json(silent=True) or {}
    else:
        form = request.form.to_dict()

    current_app.contact_service.submit(form, request.files.get('document'))
    return jsonify({'success': True, 'message': 'Email sent successfully!'})
