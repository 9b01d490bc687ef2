"""
Presence Engine: check-in TTL lifecycle, grouping and privacy-scoped queries.

Check-ins are never deleted. Expiry sets ``expires_at`` and is one-way.
"""
import os
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Optional
from sqlalchemy import select, or_, and_
from sqlalchemy.orm import selectinload

from .models import AsyncSessionLocal, utcnow
from .models.places import Place
from .models.profiles import Profile
from .models.presence import CheckIn, PRIVACY_LEVELS, PUBLIC, FRIENDS
from .models.relationships import Relationship, ACCEPTED
from .schemas.presence import CheckInOut, CheckInView, PlaceGroup
from .errors import returns_result, ValidationError, NotAuthorized, NotFound

logger = logging.getLogger(__name__)

DEFAULT_TTL = timedelta(minutes=int(os.getenv('CHECKIN_DEFAULT_TTL_MINUTES', '120')))
MAX_ACTIVITY_LENGTH = 280
UPDATABLE_FIELDS = frozenset({'activity', 'privacy', 'expires_at'})


def _validate_privacy(privacy) -> str:
    if privacy not in PRIVACY_LEVELS:
        raise ValidationError(f"privacy must be one of {', '.join(PRIVACY_LEVELS)}.")
    return privacy


def _validate_activity(activity) -> Optional[str]:
    if activity is None:
        return None
    if not isinstance(activity, str):
        raise ValidationError('activity must be text.')
    if len(activity) > MAX_ACTIVITY_LENGTH:
        raise ValidationError(f'activity must be at most {MAX_ACTIVITY_LENGTH} characters.')
    return activity


def _validate_future(expires_at: datetime, now: datetime) -> datetime:
    if not isinstance(expires_at, datetime):
        raise ValidationError('expires_at must be a date and time.')
    if expires_at.tzinfo is None:
        raise ValidationError('expires_at must include a timezone.')
    if expires_at <= now:
        raise ValidationError('expires_at must be in the future.')
    return expires_at


def is_active(check_in, now: Optional[datetime] = None) -> bool:
    now = now or utcnow()
    return check_in.expires_at is None or check_in.expires_at > now


def _active_clause(now: datetime):
    return or_(CheckIn.expires_at.is_(None), CheckIn.expires_at > now)


def _visible_to(viewer_id: str):
    requested = select(Relationship.recipient_id).where(
        Relationship.requester_id == viewer_id, Relationship.status == ACCEPTED
    )
    received = select(Relationship.requester_id).where(
        Relationship.recipient_id == viewer_id, Relationship.status == ACCEPTED
    )
    return or_(
        CheckIn.privacy == PUBLIC,
        CheckIn.subject_id == viewer_id,
        and_(
            CheckIn.privacy == FRIENDS,
            or_(CheckIn.subject_id.in_(requested), CheckIn.subject_id.in_(received)),
        ),
    )


def _hydrated():
    return select(CheckIn).options(selectinload(CheckIn.place), selectinload(CheckIn.profile))


async def _load_view(session, check_in_id: str) -> CheckInView:
    q = await session.execute(
        _hydrated().where(CheckIn.id == check_in_id).execution_options(populate_existing=True)
    )
    return CheckInView.model_validate(q.scalars().one())


async def _get_owned(session, check_in_id: str, subject_id: str) -> CheckIn:
    row = await session.get(CheckIn, check_in_id)
    if row is None:
        raise NotFound('Check-in not found.')
    if row.subject_id != subject_id:
        raise NotAuthorized('You can only change your own check-ins.')
    return row


@returns_result
async def create_check_in(
    subject_id: str,
    place_id: str,
    activity: Optional[str] = None,
    privacy: str = PUBLIC,
    ttl: Optional[timedelta] = None,
    expires_at: Optional[datetime] = None,
) -> CheckInView:
    if not subject_id or not place_id:
        raise ValidationError('subject_id and place_id are required.')
    _validate_privacy(privacy)
    _validate_activity(activity)
    if ttl is not None and expires_at is not None:
        raise ValidationError('Give either ttl or expires_at, not both.')
    now = utcnow()
    if expires_at is not None:
        _validate_future(expires_at, now)
    else:
        if ttl is not None and (not isinstance(ttl, timedelta) or ttl <= timedelta(0)):
            raise ValidationError('ttl must be a positive duration.')
        expires_at = now + (ttl if ttl is not None else DEFAULT_TTL)

    async with AsyncSessionLocal() as session:
        if await session.get(Place, place_id) is None:
            raise NotFound('That place does not exist.')
        if await session.get(Profile, subject_id) is None:
            raise NotFound('That user does not exist.')
        row = CheckIn(
            subject_id=subject_id,
            place_id=place_id,
            activity=activity,
            privacy=privacy,
            created_at=now,
            expires_at=expires_at,
        )
        session.add(row)
        await session.commit()
        logger.info(f'check-in {row.id} created by {subject_id} at {place_id} until {expires_at.isoformat()}')
        return await _load_view(session, row.id)


async def _fetch_active(viewer_id: Optional[str]) -> list[CheckInView]:
    now = utcnow()
    stmt = _hydrated().where(_active_clause(now))
    if viewer_id is not None:
        stmt = stmt.where(_visible_to(viewer_id))
    stmt = stmt.order_by(CheckIn.created_at.desc(), CheckIn.id)
    async with AsyncSessionLocal() as session:
        q = await session.execute(stmt)
        return [CheckInView.model_validate(row) for row in q.scalars().all()]


@returns_result
async def list_active(viewer_id: Optional[str] = None) -> list[CheckInView]:
    """Active check-ins, newest first. With a viewer, privacy levels are enforced."""
    return await _fetch_active(viewer_id)


def group_check_ins(check_ins) -> Dict[str, PlaceGroup]:
    groups: Dict[str, PlaceGroup] = {}
    for check_in in check_ins:
        group = groups.get(check_in.place_id)
        if group is None:
            group = groups[check_in.place_id] = PlaceGroup(place=check_in.place)
        group.check_ins.append(check_in)
    return groups


@returns_result
async def group_by_place(viewer_id: Optional[str] = None) -> Dict[str, PlaceGroup]:
    return group_check_ins(await _fetch_active(viewer_id))


@returns_result
async def update_check_in(check_in_id: str, subject_id: str, fields: Dict[str, Any]) -> CheckInView:
    if not isinstance(fields, dict):
        raise ValidationError('fields must be a mapping.')
    unknown = set(fields) - UPDATABLE_FIELDS
    if unknown:
        raise ValidationError(f"Unsupported fields: {', '.join(sorted(unknown))}.")
    now = utcnow()
    if 'privacy' in fields:
        _validate_privacy(fields['privacy'])
    if 'activity' in fields:
        _validate_activity(fields['activity'])
    if fields.get('expires_at') is not None:
        _validate_future(fields['expires_at'], now)

    async with AsyncSessionLocal() as session:
        row = await _get_owned(session, check_in_id, subject_id)
        if not is_active(row, now):
            raise ValidationError('This check-in has already expired.')
        for key, value in fields.items():
            setattr(row, key, value)
        await session.commit()
        return await _load_view(session, row.id)


@returns_result
async def expire_check_in(check_in_id: str, subject_id: str) -> CheckInOut:
    async with AsyncSessionLocal() as session:
        row = await _get_owned(session, check_in_id, subject_id)
        now = utcnow()
        if is_active(row, now):
            row.expires_at = now
            await session.commit()
            logger.info(f'check-in {row.id} expired by {subject_id}')
        return CheckInOut.model_validate(row)
