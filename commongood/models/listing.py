"""Listing model for skill and item exchanges."""

from datetime import datetime
from commongood import db
from commongood.models.base import utc_isoformat, geo_point

LISTING_TYPES = ('OfferSkill', 'RequestSkill', 'OfferItem', 'RequestItem')
LISTING_STATUSES = ('active', 'pending_exchange', 'completed', 'cancelled', 'expired')
MAX_LISTING_PHOTOS = 5


class Listing(db.Model):
    """Offer or request of a skill or an item."""

    __tablename__ = 'listings'

    # Query-string filtering, sorting and text search (see utils/api_features.py)
    FILTERABLE_FIELDS = (
        'user_id', 'listing_type', 'category', 'status', 'location',
        'title', 'created_at', 'updated_at'
    )
    SORTABLE_FIELDS = ('created_at', 'updated_at', 'title', 'category', 'listing_type', 'status')
    SEARCHABLE_FIELDS = ('title', 'description', 'tags', 'category', 'location')

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    listing_type = db.Column(db.String(20), nullable=False, index=True)
    title = db.Column(db.String(100), nullable=False, index=True)
    description = db.Column(db.Text, nullable=False)
    category = db.Column(db.String(50), nullable=False, index=True)
    tags = db.Column(db.JSON, nullable=True)  # Array of strings
    photos = db.Column(db.JSON, nullable=True)  # Array of {url, public_id}
    estimated_effort = db.Column(db.String(100), nullable=True)  # e.g. '1 hour', 'Small task'
    exchange_preference = db.Column(db.String(100), nullable=True)  # e.g. 'Skill for Skill'
    status = db.Column(db.String(20), default='active', nullable=False, index=True)
    location = db.Column(db.String(255), nullable=True)
    latitude = db.Column(db.Float, nullable=True)
    longitude = db.Column(db.Float, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    @property
    def coordinates(self):
        return geo_point(self.latitude, self.longitude)

    @property
    def photo_public_ids(self):
        return [photo['public_id'] for photo in (self.photos or []) if photo.get('public_id')]

    def to_preview(self):
        """Short form used inside conversations."""
        return {
            'id': self.id,
            'title': self.title,
            'photos': self.photos or [],
        }

    def to_dict(self):
        """Convert listing to dictionary."""
        owner = None
        if self.user:
            owner = self.user.to_summary()
            owner['location'] = self.user.location

        return {
            'id': self.id,
            'user': owner,
            'user_id': self.user_id,
            'listing_type': self.listing_type,
            'title': self.title,
            'description': self.description,
            'category': self.category,
            'tags': self.tags or [],
            'photos': self.photos or [],
            'estimated_effort': self.estimated_effort,
            'exchange_preference': self.exchange_preference,
            'status': self.status,
            'location': self.location,
            'coordinates': self.coordinates,
            'created_at': utc_isoformat(self.created_at),
            'updated_at': utc_isoformat(self.updated_at),
        }

    def __repr__(self):
        return f'<Listing {self.id}: {self.title}>'
