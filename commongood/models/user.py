"""User model for authentication and user management."""

import calendar
from datetime import datetime
from werkzeug.security import generate_password_hash, check_password_hash
from commongood import db
from commongood.models.base import utc_isoformat, geo_point

DEFAULT_PROFILE_PICTURE_URL = (
    'https://res.cloudinary.com/demo/image/upload/'
    'w_150,h_150,c_thumb,g_face,r_max/default_profile.png'
)

MIN_PASSWORD_LENGTH = 8


class User(db.Model):
    """A community member who lists, messages and reviews."""

    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(50), nullable=False)
    email = db.Column(db.String(254), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    profile_picture_url = db.Column(db.String(500), default=DEFAULT_PROFILE_PICTURE_URL, nullable=False)
    profile_picture_public_id = db.Column(db.String(255), nullable=True)  # Cloudinary public_id
    bio = db.Column(db.Text, nullable=True)
    location = db.Column(db.String(255), nullable=True)
    latitude = db.Column(db.Float, nullable=True)
    longitude = db.Column(db.Float, nullable=True)
    skills_offered = db.Column(db.JSON, nullable=True)
    skills_sought = db.Column(db.JSON, nullable=True)

    # Maintained by the review aggregation hooks in review.py
    average_rating = db.Column(db.Float, default=0, nullable=False)
    num_reviews = db.Column(db.Integer, default=0, nullable=False)

    is_active = db.Column(db.Boolean, default=True, nullable=False)
    password_changed_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    listings = db.relationship('Listing', backref='user', lazy=True, foreign_keys='Listing.user_id')

    def set_password(self, password):
        """Hash and set the user password."""
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        """Check if the provided password matches the hash."""
        return check_password_hash(self.password_hash, password)

    def changed_password_after(self, issued_at):
        """True if the password changed after a token issued at ``issued_at`` (unix seconds)."""
        if not self.password_changed_at or issued_at is None:
            return False
        changed_at = calendar.timegm(self.password_changed_at.utctimetuple())
        return changed_at > int(issued_at)

    @property
    def coordinates(self):
        return geo_point(self.latitude, self.longitude)

    def to_summary(self):
        """Compact representation embedded in listings, messages and reviews."""
        return {
            'id': self.id,
            'name': self.name,
            'profile_picture_url': self.profile_picture_url,
        }

    def to_dict(self, private=False):
        """Convert user to dictionary.

        The e-mail address is only included in the private view
        (the user looking at their own account).
        """
        data = {
            'id': self.id,
            'name': self.name,
            'profile_picture_url': self.profile_picture_url,
            'bio': self.bio,
            'location': self.location,
            'coordinates': self.coordinates,
            'skills_offered': self.skills_offered or [],
            'skills_sought': self.skills_sought or [],
            'average_rating': self.average_rating or 0,
            'num_reviews': self.num_reviews or 0,
            'created_at': utc_isoformat(self.created_at),
        }
        if private:
            data['email'] = self.email
            data['is_active'] = self.is_active
            data['updated_at'] = utc_isoformat(self.updated_at)
        return data

    def __repr__(self):
        return f'<User {self.id}: {self.email}>'
