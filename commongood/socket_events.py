"""WebSocket events for real-time messaging.

Sockets authenticate with the same JWT as the REST API, passed as
``auth={'token': ...}`` or ``?token=``. Each connection joins its personal
room ``user_<id>``; clients join ``conversation_<id>`` rooms to receive
``new_message`` and ``user_typing`` events.
"""

import logging

from flask import request
from flask_socketio import emit, join_room, leave_room

from commongood import db, socketio
from commongood.models import Conversation
from commongood.utils.auth import authenticate
from commongood.utils.errors import AppError

logger = logging.getLogger(__name__)

# socket id -> user id of the authenticated connections
user_sockets = {}


def conversation_room(conversation_id):
    return f'conversation_{conversation_id}'


def user_room(user_id):
    return f'user_{user_id}'


def get_user_from_token(token):
    """Resolve the active user owning a token, or None."""
    if not token:
        return None
    try:
        return authenticate(token)
    except AppError as e:
        logger.warning(f'Socket token rejected: {e.message}')
        return None


def _conversation_id(data):
    if not isinstance(data, dict):
        return None
    try:
        return int(data.get('conversation_id'))
    except (TypeError, ValueError):
        return None


def register_socket_events(socketio):
    """Register all Socket.IO event handlers."""

    @socketio.on('connect')
    def handle_connect(auth=None):
        """Handle client connection."""
        token = None
        if auth and isinstance(auth, dict):
            token = auth.get('token')
        elif request.args.get('token'):
            token = request.args.get('token')

        user = get_user_from_token(token)
        if not user:
            logger.warning('Socket connection without a valid token')
            return False

        user_sockets[request.sid] = user.id
        join_room(user_room(user.id))

        logger.info(f'User {user.id} connected: {request.sid}')
        emit('connected', {'user_id': user.id})
        return True

    @socketio.on('disconnect')
    def handle_disconnect(*args):
        """Handle client disconnection."""
        user_id = user_sockets.pop(request.sid, None)
        if user_id:
            logger.info(f'User {user_id} disconnected: {request.sid}')

    @socketio.on('join_conversation')
    def handle_join_conversation(data):
        """Join a conversation room (participants only)."""
        user_id = user_sockets.get(request.sid)
        conversation_id = _conversation_id(data)

        if not user_id:
            emit('error', {'message': 'Not authenticated'})
            return
        if not conversation_id:
            emit('error', {'message': 'Missing conversation_id'})
            return

        conversation = db.session.get(Conversation, conversation_id)
        if not conversation:
            emit('error', {'message': 'Conversation not found'})
            return
        if not conversation.has_participant(user_id):
            emit('error', {'message': 'Access denied'})
            return

        join_room(conversation_room(conversation_id))

        logger.info(f'User {user_id} joined conversation {conversation_id}')
        emit('joined_conversation', {'conversation_id': conversation_id})

    @socketio.on('leave_conversation')
    def handle_leave_conversation(data):
        """Leave a conversation room."""
        conversation_id = _conversation_id(data)
        if not conversation_id:
            return

        leave_room(conversation_room(conversation_id))

        logger.info(f'User {user_sockets.get(request.sid)} left conversation {conversation_id}')
        emit('left_conversation', {'conversation_id': conversation_id})

    @socketio.on('typing')
    def handle_typing(data):
        """Broadcast typing indicator to the other participant."""
        user_id = user_sockets.get(request.sid)
        conversation_id = _conversation_id(data)
        if not user_id or not conversation_id:
            return

        emit('user_typing', {
            'user_id': user_id,
            'is_typing': bool(data.get('is_typing', False)),
            'conversation_id': conversation_id
        }, to=conversation_room(conversation_id), include_self=False)


def emit_new_message(conversation_id, message_dict, receiver_id=None):
    """Push a stored message to its conversation room and the receiver.

    Delivery is best effort: clients that miss it pick the message up
    when they poll.
    """
    try:
        payload = {
            'message': message_dict,
            'conversation_id': conversation_id
        }
        socketio.emit('new_message', payload, to=conversation_room(conversation_id))
        if receiver_id:
            socketio.emit('message_notification', payload, to=user_room(receiver_id))

        logger.info(f'Emitted new message to conversation {conversation_id}')
    except Exception as e:
        logger.error(f'Emit message error: {e}')
