# api/chat.py
from flask import Blueprint, current_app, jsonify, request

from core.errors import ValidationError
from middleware.security import limiter

chat_bp = Blueprint('chat', __name__)


@chat_bp.route('/chat', methods=['POST'])
@limiter.limit("30 per minute")
def chat():
    data = request.get_json(silent=True) or {}
    message = data.get('message')
    if not isinstance(message, str) or not message.strip():
        raise ValidationError('Message is required.')

    reply = current_app.chatbot.reply(message)
    return jsonify({'reply': reply.text}), reply.status_code
