"""Review model and reviewee rating aggregation."""
from datetime import datetime
from sqlalchemy import event, func, select
from commongood import db
from commongood.models.base import utc_isoformat
from commongood.models.user import User

MIN_RATING = 1
MAX_RATING = 5


class Review(db.Model):
    """Star rating plus comment left by one user about another, tied to a listing."""

    __tablename__ = 'reviews'

    FILTERABLE_FIELDS = ('rating', 'reviewer_id', 'reviewee_id', 'listing_id', 'created_at')
    SORTABLE_FIELDS = ('created_at', 'rating')
    SEARCHABLE_FIELDS = ('comment',)

    id = db.Column(db.Integer, primary_key=True)
    listing_id = db.Column(
        db.Integer, db.ForeignKey('listings.id', ondelete='SET NULL'), nullable=True, index=True
    )
    reviewer_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    reviewee_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    rating = db.Column(db.Integer, nullable=False)
    comment = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    reviewer = db.relationship('User', foreign_keys=[reviewer_id], backref='reviews_given')
    reviewee = db.relationship('User', foreign_keys=[reviewee_id], backref='reviews_received')
    listing = db.relationship('Listing', backref=db.backref('reviews', lazy='dynamic'))

    # One review per reviewer, reviewee and listing
    __table_args__ = (
        db.UniqueConstraint('listing_id', 'reviewer_id', 'reviewee_id', name='unique_listing_review'),
    )

    @classmethod
    def calculate_average_ratings(cls, connection, reviewee_id):
        """Recompute ``average_rating``/``num_reviews`` of a reviewee.

        Runs on the flush connection so it sees the row being inserted,
        updated or deleted.
        """
        reviews = cls.__table__
        num_reviews, average = connection.execute(
            select(func.count(reviews.c.id), func.avg(reviews.c.rating))
            .where(reviews.c.reviewee_id == reviewee_id)
        ).one()

        if num_reviews:
            average_rating = round(float(average), 1)
        else:
            average_rating = 0

        users = User.__table__
        connection.execute(
            users.update()
            .where(users.c.id == reviewee_id)
            .values(average_rating=average_rating, num_reviews=num_reviews)
        )

    def to_dict(self):
        """Convert review to dictionary."""
        return {
            'id': self.id,
            'listing_id': self.listing_id,
            'reviewer': self.reviewer.to_summary() if self.reviewer else None,
            'reviewer_id': self.reviewer_id,
            'reviewee_id': self.reviewee_id,
            'rating': self.rating,
            'comment': self.comment,
            'created_at': utc_isoformat(self.created_at),
            'updated_at': utc_isoformat(self.updated_at),
        }

    def __repr__(self):
        return f'<Review {self.id}: {self.rating}stars>'


@event.listens_for(Review, 'after_insert')
@event.listens_for(Review, 'after_update')
@event.listens_for(Review, 'after_delete')
def _refresh_reviewee_rating(mapper, connection, target):
    Review.calculate_average_ratings(connection, target.reviewee_id)
