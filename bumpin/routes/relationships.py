from typing import List
from fastapi import APIRouter, Depends, Query, Response
from ..schemas.common import ResultOut
from ..schemas.profiles import ProfileSummary
from ..schemas.relationships import RelationshipIn, HopeToBumpIn, RelationshipOut, RelationshipListing
from ..relationships import (
    propose_relationship,
    accept_relationship,
    remove_relationship,
    set_hope_to_bump,
    list_relationships,
    search_candidates,
)
from ..auth import get_current_user
from .envelope import respond

router = APIRouter()


@router.get('', response_model=ResultOut[RelationshipListing])
async def my_relationships(response: Response, current_user: dict = Depends(get_current_user)):
    return respond(await list_relationships(current_user['id']), response)


@router.get('/candidates', response_model=ResultOut[List[ProfileSummary]])
async def candidates(response: Response, q: str = Query(''), current_user: dict = Depends(get_current_user)):
    return respond(await search_candidates(q, current_user['id']), response)


@router.post('', response_model=ResultOut[RelationshipOut])
async def propose(payload: RelationshipIn, response: Response, current_user: dict = Depends(get_current_user)):
    return respond(await propose_relationship(current_user['id'], payload.recipient_id), response)


@router.post('/{relationship_id}/accept', response_model=ResultOut[RelationshipOut])
async def accept(relationship_id: str, response: Response, current_user: dict = Depends(get_current_user)):
    return respond(await accept_relationship(relationship_id, current_user['id']), response)


@router.delete('/{relationship_id}', response_model=ResultOut[RelationshipOut])
async def remove(relationship_id: str, response: Response, current_user: dict = Depends(get_current_user)):
    return respond(await remove_relationship(relationship_id, current_user['id']), response)


@router.put('/{relationship_id}/hope-to-bump', response_model=ResultOut[RelationshipOut])
async def hope_to_bump(
    relationship_id: str,
    payload: HopeToBumpIn,
    response: Response,
    current_user: dict = Depends(get_current_user),
):
    result = await set_hope_to_bump(relationship_id, current_user['id'], payload.hope_to_bump)
    return respond(result, response)
