"""
Relationship state as a tagged variant.

A stored row is read into exactly one of ``Pending``, ``Accepted`` or ``Rejected``;
transitions are plain functions over those values, so the direction of a request
only exists while it is pending.
"""
from dataclasses import dataclass
from typing import Optional, Union

from .errors import NotAuthorized
from .models.relationships import ACCEPTED, PENDING, REJECTED


@dataclass(frozen=True)
class Pending:
    requester_id: str
    recipient_id: str


@dataclass(frozen=True)
class Accepted:
    a: str
    b: str


@dataclass(frozen=True)
class Rejected:
    # legacy status; no transition produces it
    requester_id: str
    recipient_id: str


RelationshipState = Union[Pending, Accepted, Rejected]


def state_of(row) -> RelationshipState:
    if row.status == PENDING:
        return Pending(row.requester_id, row.recipient_id)
    if row.status == ACCEPTED:
        return Accepted(row.requester_id, row.recipient_id)
    if row.status == REJECTED:
        return Rejected(row.requester_id, row.recipient_id)
    raise ValueError(f'unknown relationship status {row.status!r}')


def parties(state: RelationshipState) -> tuple[str, str]:
    if isinstance(state, Accepted):
        return state.a, state.b
    return state.requester_id, state.recipient_id


def counterpart(state: RelationshipState, user_id: str) -> str:
    first, second = parties(state)
    return second if user_id == first else first


def accept(state: RelationshipState, acting_user_id: str) -> Accepted:
    """Only the recipient of a pending request may accept it."""
    if not isinstance(state, Pending) or acting_user_id != state.recipient_id:
        raise NotAuthorized('Only the recipient of a pending request can accept it.')
    return Accepted(state.requester_id, state.recipient_id)


def ensure_can_remove(state: RelationshipState, acting_user_id: str) -> None:
    if acting_user_id not in parties(state):
        raise NotAuthorized('Only the people in this friendship can remove it.')


def partition(state: RelationshipState, user_id: str) -> Optional[str]:
    """Which listing bucket a row belongs to from ``user_id``'s point of view."""
    if isinstance(state, Accepted):
        return 'accepted'
    if isinstance(state, Pending):
        return 'pending_received' if state.recipient_id == user_id else 'pending_sent'
    return None
