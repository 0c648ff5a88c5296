# api/subscribers.py
from flask import Blueprint, current_app, jsonify, request

subscribers_bp = Blueprint('subscribers', __name__)


@subscribers_bp.route('/subscribe', methods=['POST'])
def subscribe():
    data = request.get_json(silent=True) or {}
    current_app.subscriber_store.subscribe(data.get('email'))
    return jsonify({'success': True, 'message': 'Subscription successful!'})
