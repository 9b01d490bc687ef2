import uuid
from sqlalchemy import Column, String, Boolean, ForeignKey, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship
from . import Base, UTCDateTime, utcnow

PENDING = 'pending'
ACCEPTED = 'accepted'
REJECTED = 'rejected'
STATUSES = (PENDING, ACCEPTED, REJECTED)


def pair_key(user_a: str, user_b: str) -> tuple[str, str]:
    a, b = sorted([user_a, user_b])
    return a, b


class Relationship(Base):
    __tablename__ = 'relationships'
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    requester_id = Column(String(64), ForeignKey('profile.id', ondelete='CASCADE'), index=True, nullable=False)
    recipient_id = Column(String(64), ForeignKey('profile.id', ondelete='CASCADE'), index=True, nullable=False)
    status = Column(String(20), nullable=False, default=PENDING)  # pending, accepted, rejected
    hope_to_bump = Column(Boolean, nullable=False, default=False)
    # sorted participant ids so the store rejects a second row for {A,B} in either direction
    pair_low = Column(String(64), nullable=False)
    pair_high = Column(String(64), nullable=False)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=True)

    requester = relationship('Profile', foreign_keys=[requester_id], lazy='raise')
    recipient = relationship('Profile', foreign_keys=[recipient_id], lazy='raise')

    __table_args__ = (
        UniqueConstraint('pair_low', 'pair_high', name='uq_relationship_pair'),
        CheckConstraint('requester_id != recipient_id', name='ck_relationship_not_self'),
    )
