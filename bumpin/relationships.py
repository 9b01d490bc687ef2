"""
Relationship Engine: friend requests, friendships and candidate search.

Every public coroutine returns a ``Result``; see ``errors.returns_result``.
"""
import logging
from sqlalchemy import select, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from .models import AsyncSessionLocal, utcnow
from .models.profiles import Profile
from .models.relationships import Relationship, PENDING, ACCEPTED, pair_key
from .schemas.profiles import ProfileSummary
from .schemas.relationships import RelationshipOut, RelationshipView, RelationshipListing
from .errors import returns_result, ValidationError, DuplicateRelationship, NotAuthorized, NotFound
from . import relationship_state as rs

logger = logging.getLogger(__name__)

MIN_SEARCH_LENGTH = 3
SEARCH_LIMIT = 10


def _require_id(value, name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f'{name} is required.')
    return value


def is_pair_conflict(exc: IntegrityError) -> bool:
    """True when the insert hit the one-row-per-pair constraint and nothing else."""
    text = str(exc.orig or exc)
    # Postgres names the constraint; SQLite lists its columns
    return 'uq_relationship_pair' in text or 'relationships.pair_low' in text


async def _get_relationship(session, relationship_id: str) -> Relationship:
    q = await session.execute(select(Relationship).where(Relationship.id == relationship_id))
    row = q.scalars().first()
    if not row:
        raise NotFound('Friend request not found.')
    return row


@returns_result
async def propose_relationship(requester_id: str, recipient_id: str) -> RelationshipOut:
    _require_id(requester_id, 'requester_id')
    _require_id(recipient_id, 'recipient_id')
    if requester_id == recipient_id:
        raise ValidationError("You can't send a friend request to yourself.")
    low, high = pair_key(requester_id, recipient_id)
    async with AsyncSessionLocal() as session:
        if await session.get(Profile, requester_id) is None:
            raise NotFound('Your profile does not exist.')
        if await session.get(Profile, recipient_id) is None:
            raise NotFound('That user does not exist.')
        row = Relationship(
            requester_id=requester_id,
            recipient_id=recipient_id,
            status=PENDING,
            hope_to_bump=False,
            pair_low=low,
            pair_high=high,
        )
        session.add(row)
        try:
            await session.commit()
        except IntegrityError as e:
            await session.rollback()
            if is_pair_conflict(e):
                raise DuplicateRelationship()
            raise
        logger.info(f'relationship {row.id} proposed {requester_id} -> {recipient_id}')
        return RelationshipOut.model_validate(row)


@returns_result
async def accept_relationship(relationship_id: str, acting_user_id: str) -> RelationshipOut:
    _require_id(relationship_id, 'relationship_id')
    _require_id(acting_user_id, 'acting_user_id')
    async with AsyncSessionLocal() as session:
        row = await _get_relationship(session, relationship_id)
        rs.accept(rs.state_of(row), acting_user_id)
        row.status = ACCEPTED
        row.updated_at = utcnow()
        await session.commit()
        logger.info(f'relationship {row.id} accepted by {acting_user_id}')
        return RelationshipOut.model_validate(row)


@returns_result
async def remove_relationship(relationship_id: str, acting_user_id: str) -> RelationshipOut:
    """Decline, cancel or unfriend: the row is deleted outright."""
    _require_id(relationship_id, 'relationship_id')
    _require_id(acting_user_id, 'acting_user_id')
    async with AsyncSessionLocal() as session:
        row = await _get_relationship(session, relationship_id)
        rs.ensure_can_remove(rs.state_of(row), acting_user_id)
        removed = RelationshipOut.model_validate(row)
        await session.delete(row)
        await session.commit()
        logger.info(f'relationship {removed.id} ({removed.status}) removed by {acting_user_id}')
        return removed


@returns_result
async def set_hope_to_bump(relationship_id: str, acting_user_id: str, value: bool) -> RelationshipOut:
    _require_id(relationship_id, 'relationship_id')
    _require_id(acting_user_id, 'acting_user_id')
    if not isinstance(value, bool):
        raise ValidationError('hope_to_bump must be true or false.')
    async with AsyncSessionLocal() as session:
        row = await _get_relationship(session, relationship_id)
        # owned by whoever sent the original request
        if row.requester_id != acting_user_id:
            raise NotAuthorized('Only the person who sent the request can change Hope to Bump.')
        row.hope_to_bump = value
        row.updated_at = utcnow()
        await session.commit()
        return RelationshipOut.model_validate(row)


@returns_result
async def list_relationships(user_id: str) -> RelationshipListing:
    _require_id(user_id, 'user_id')
    async with AsyncSessionLocal() as session:
        q = await session.execute(
            select(Relationship)
            .where(or_(Relationship.requester_id == user_id, Relationship.recipient_id == user_id))
            .options(selectinload(Relationship.requester), selectinload(Relationship.recipient))
            .order_by(Relationship.created_at.desc(), Relationship.id)
        )
        rows = q.scalars().all()

    listing = RelationshipListing()
    for row in rows:
        state = rs.state_of(row)
        bucket = rs.partition(state, user_id)
        if bucket is None:
            continue
        other = row.recipient if rs.counterpart(state, user_id) == row.recipient_id else row.requester
        view = RelationshipView.model_validate(row)
        view.counterpart = ProfileSummary.model_validate(other) if other is not None else None
        getattr(listing, bucket).append(view)
    return listing


def _escape_like(value: str) -> str:
    return value.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')


@returns_result
async def search_candidates(query: str, excluding_user_id: str) -> list[ProfileSummary]:
    """Case-insensitive handle search; trivial queries never reach the store."""
    term = (query or '').strip()
    if len(term) < MIN_SEARCH_LENGTH:
        return []
    async with AsyncSessionLocal() as session:
        q = await session.execute(
            select(Profile)
            .where(Profile.handle.ilike(f'%{_escape_like(term)}%', escape='\\'))
            .where(Profile.id != excluding_user_id)
            .order_by(Profile.handle)
            .limit(SEARCH_LIMIT)
        )
        return [ProfileSummary.model_validate(p) for p in q.scalars().all()]
