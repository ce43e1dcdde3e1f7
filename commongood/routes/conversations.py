"""Conversation and message routes for user-to-user communication.

Clients poll ``GET /<id>/messages?created_at[gt]=<iso>`` for new messages;
the same messages are pushed over Socket.IO when a client is connected.
"""

import logging
from datetime import datetime

from flask import Blueprint, request, g
from sqlalchemy import or_

from commongood import db
from commongood.models import User, Listing, Conversation, Message
from commongood.routes.helpers import get_or_404
from commongood.socket_events import emit_new_message
from commongood.utils.api_features import APIFeatures
from commongood.utils.auth import token_required
from commongood.utils.errors import AppError
from commongood.utils.request_data import get_request_data
from commongood.utils.responses import success

logger = logging.getLogger(__name__)

conversations_bp = Blueprint('conversations', __name__)


def _parse_id(value, name):
    if value in (None, ''):
        return None
    if isinstance(value, bool):
        raise AppError(f'Invalid {name}.', 400)
    try:
        return int(value)
    except (TypeError, ValueError):
        raise AppError(f'Invalid {name}.', 400)


def _clean_content(data):
    content = data.get('content')
    if not isinstance(content, str) or not content.strip():
        raise AppError('Message content cannot be empty.', 400)
    content = content.strip()
    if len(content) > Message.MAX_CONTENT_LENGTH:
        raise AppError(f'Message cannot be more than {Message.MAX_CONTENT_LENGTH} characters.', 400)
    return content


def _get_participating_conversation(conversation_id):
    conversation = get_or_404(Conversation, conversation_id, 'No conversation found with that ID.')
    if not conversation.has_participant(g.current_user.id):
        raise AppError('You are not a participant in this conversation.', 403)
    return conversation


def _add_message(conversation, sender_id, receiver_id, content):
    message = Message(
        conversation_id=conversation.id,
        sender_id=sender_id,
        receiver_id=receiver_id,
        content=content
    )
    db.session.add(message)
    # Keeps the conversation list ordered by activity
    conversation.updated_at = datetime.utcnow()
    return message


@conversations_bp.route('', methods=['POST'])
@token_required
def start_conversation():
    """Send a first message, creating the conversation if needed."""
    user = g.current_user
    data = get_request_data()

    receiver_id = _parse_id(data.get('receiver_id'), 'receiver_id')
    if receiver_id is None:
        raise AppError('Please provide a receiver_id.', 400)
    content = _clean_content(data)

    if receiver_id == user.id:
        raise AppError('You cannot start a conversation with yourself.', 400)

    receiver = db.session.get(User, receiver_id)
    if not receiver or not receiver.is_active:
        raise AppError('No user found with that ID.', 404)

    listing_id = _parse_id(data.get('listing_id'), 'listing_id')
    if listing_id is not None:
        get_or_404(Listing, listing_id, 'No listing found with that ID.')

    conversation = Conversation.find_between(user.id, receiver_id, listing_id)
    if conversation is None:
        first_id, second_id = Conversation.ordered_pair(user.id, receiver_id)
        conversation = Conversation(
            participant_1_id=first_id,
            participant_2_id=second_id,
            listing_id=listing_id
        )
        db.session.add(conversation)
        db.session.flush()
        logger.info(f'Conversation {conversation.id} started by user {user.id}')

    message = _add_message(conversation, user.id, receiver_id, content)
    db.session.commit()

    message_data = message.to_dict()
    emit_new_message(conversation.id, message_data, receiver_id)

    return success({
        'conversation': conversation.to_dict(user.id),
        'message': message_data,
    }, 201)


@conversations_bp.route('', methods=['GET'])
@token_required
def get_conversations():
    """Get the current user's conversations, most recently active first."""
    user_id = g.current_user.id
    conversations = Conversation.query.filter(
        or_(
            Conversation.participant_1_id == user_id,
            Conversation.participant_2_id == user_id
        )
    ).order_by(Conversation.updated_at.desc(), Conversation.id.desc()).all()

    items = [conversation.to_dict(user_id) for conversation in conversations]
    return success({'conversations': items}, results=len(items), total=len(items), page=1)


@conversations_bp.route('/unread-count', methods=['GET'])
@token_required
def get_unread_count():
    """Total number of unread messages addressed to the current user."""
    count = Message.query.filter(
        Message.receiver_id == g.current_user.id,
        Message.is_read.is_(False)
    ).count()
    return success({'unread_count': count})


@conversations_bp.route('/<int:conversation_id>', methods=['GET'])
@token_required
def get_conversation(conversation_id):
    """Get a single conversation."""
    conversation = _get_participating_conversation(conversation_id)
    return success({'conversation': conversation.to_dict(g.current_user.id)})


@conversations_bp.route('/<int:conversation_id>/messages', methods=['GET'])
@token_required
def get_messages(conversation_id):
    """Get messages in a conversation and mark the ones sent to me as read."""
    conversation = _get_participating_conversation(conversation_id)

    Message.query.filter(
        Message.conversation_id == conversation.id,
        Message.receiver_id == g.current_user.id,
        Message.is_read.is_(False)
    ).update({'is_read': True}, synchronize_session=False)
    db.session.commit()

    query = Message.query.filter(Message.conversation_id == conversation.id)
    features = APIFeatures(Message, query, request.args) \
        .filter().search().sort().limit_fields().paginate()
    messages = features.execute()
    return success({'messages': messages}, **features.meta(messages))


@conversations_bp.route('/<int:conversation_id>/messages', methods=['POST'])
@token_required
def send_message(conversation_id):
    """Send a message in an existing conversation."""
    user = g.current_user
    conversation = _get_participating_conversation(conversation_id)
    content = _clean_content(get_request_data())

    receiver_id = conversation.get_other_participant_id(user.id)
    message = _add_message(conversation, user.id, receiver_id, content)
    db.session.commit()

    message_data = message.to_dict()
    emit_new_message(conversation.id, message_data, receiver_id)

    return success({'message': message_data}, 201)
