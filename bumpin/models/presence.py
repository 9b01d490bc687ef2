import uuid
from sqlalchemy import Column, String, ForeignKey, Index
from sqlalchemy.orm import relationship
from . import Base, UTCDateTime, utcnow

PUBLIC = 'public'
FRIENDS = 'friends'
PRIVATE = 'private'
PRIVACY_LEVELS = (PUBLIC, FRIENDS, PRIVATE)


class CheckIn(Base):
    __tablename__ = 'presence'
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    subject_id = Column(String(64), ForeignKey('profile.id', ondelete='CASCADE'), index=True, nullable=False)
    place_id = Column(String(64), ForeignKey('place.id', ondelete='CASCADE'), index=True, nullable=False)
    activity = Column(String(280), nullable=True)
    privacy = Column(String(20), nullable=False, default=PUBLIC)  # public, friends, private
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    expires_at = Column(UTCDateTime, nullable=True)  # None keeps the check-in active indefinitely

    place = relationship('Place', lazy='raise')
    profile = relationship('Profile', lazy='raise')

    __table_args__ = (
        Index('ix_presence_expires_at', 'expires_at'),
    )
