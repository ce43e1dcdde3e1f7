"""Message and Conversation models for user-to-user communication."""

from datetime import datetime
from sqlalchemy import and_
from commongood import db
from commongood.models.base import utc_isoformat


class Conversation(db.Model):
    """Conversation between two users, optionally about a listing.

    Participant ids are stored sorted (participant_1_id < participant_2_id),
    so a pair maps to the same row whoever starts the conversation.
    """

    __tablename__ = 'conversations'

    id = db.Column(db.Integer, primary_key=True)
    participant_1_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    participant_2_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    listing_id = db.Column(
        db.Integer, db.ForeignKey('listings.id', ondelete='SET NULL'), nullable=True, index=True
    )

    # Timestamps
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False, index=True)

    # Relationships
    participant_1 = db.relationship('User', foreign_keys=[participant_1_id])
    participant_2 = db.relationship('User', foreign_keys=[participant_2_id])
    listing = db.relationship('Listing', backref=db.backref('conversations', lazy='dynamic'))
    messages = db.relationship(
        'Message', backref='conversation', lazy='dynamic',
        order_by='Message.created_at', cascade='all, delete-orphan'
    )

    __table_args__ = (
        db.UniqueConstraint('participant_1_id', 'participant_2_id', 'listing_id', name='unique_conversation'),
    )

    @staticmethod
    def ordered_pair(user_a_id, user_b_id):
        return (user_a_id, user_b_id) if user_a_id < user_b_id else (user_b_id, user_a_id)

    @classmethod
    def find_between(cls, user_a_id, user_b_id, listing_id=None):
        """Conversation for this pair and listing; listing-less threads only match listing-less."""
        first_id, second_id = cls.ordered_pair(user_a_id, user_b_id)
        query = cls.query.filter(
            and_(cls.participant_1_id == first_id, cls.participant_2_id == second_id)
        )
        if listing_id is None:
            query = query.filter(cls.listing_id.is_(None))
        else:
            query = query.filter(cls.listing_id == listing_id)
        return query.first()

    @property
    def participant_ids(self):
        return [self.participant_1_id, self.participant_2_id]

    def has_participant(self, user_id):
        return user_id in self.participant_ids

    def get_other_participant_id(self, user_id):
        """Get the id of the other participant in the conversation."""
        if self.participant_1_id == user_id:
            return self.participant_2_id
        return self.participant_1_id

    def get_last_message(self):
        """Get the most recent message in the conversation."""
        return self.messages.order_by(None).order_by(Message.created_at.desc(), Message.id.desc()).first()

    def get_unread_count(self, user_id):
        """Get count of unread messages addressed to a user."""
        return self.messages.filter(
            Message.receiver_id == user_id,
            Message.is_read.is_(False)
        ).count()

    def to_dict(self, current_user_id=None):
        """Convert conversation to dictionary."""
        last_message = self.get_last_message()

        data = {
            'id': self.id,
            'participants': [
                participant.to_summary()
                for participant in (self.participant_1, self.participant_2)
                if participant
            ],
            'listing': self.listing.to_preview() if self.listing else None,
            'last_message': last_message.to_dict() if last_message else None,
            'created_at': utc_isoformat(self.created_at),
            'updated_at': utc_isoformat(self.updated_at),
        }
        if current_user_id:
            data['unread_count'] = self.get_unread_count(current_user_id)
        return data

    def __repr__(self):
        return f'<Conversation {self.id}: User {self.participant_1_id} <-> User {self.participant_2_id}>'


class Message(db.Model):
    """Message model for individual messages within a conversation."""

    __tablename__ = 'messages'

    FILTERABLE_FIELDS = ('sender_id', 'receiver_id', 'is_read', 'created_at')
    SORTABLE_FIELDS = ('created_at',)
    SEARCHABLE_FIELDS = ('content',)

    MAX_CONTENT_LENGTH = 5000

    id = db.Column(db.Integer, primary_key=True)
    conversation_id = db.Column(db.Integer, db.ForeignKey('conversations.id'), nullable=False, index=True)
    sender_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    receiver_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    content = db.Column(db.Text, nullable=False)
    is_read = db.Column(db.Boolean, default=False, nullable=False)

    # Timestamps
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)

    # Relationships
    sender = db.relationship('User', foreign_keys=[sender_id])
    receiver = db.relationship('User', foreign_keys=[receiver_id])

    def to_dict(self):
        """Convert message to dictionary."""
        return {
            'id': self.id,
            'conversation_id': self.conversation_id,
            'sender': self.sender.to_summary() if self.sender else None,
            'sender_id': self.sender_id,
            'receiver_id': self.receiver_id,
            'content': self.content,
            'is_read': self.is_read,
            'created_at': utc_isoformat(self.created_at),
        }

    def __repr__(self):
        return f'<Message {self.id} in Conversation {self.conversation_id}>'
