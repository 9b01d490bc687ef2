from datetime import timedelta
from typing import List
from fastapi import APIRouter, Depends, Response
from ..schemas.common import ResultOut
from ..schemas.presence import CheckInIn, CheckInUpdateIn, CheckInOut, CheckInView, PlaceGroup
from ..presence import create_check_in, list_active, group_by_place, update_check_in, expire_check_in
from ..auth import get_current_user
from .envelope import respond

router = APIRouter()


@router.post('', response_model=ResultOut[CheckInView])
async def check_in(payload: CheckInIn, response: Response, current_user: dict = Depends(get_current_user)):
    ttl = timedelta(minutes=payload.ttl_minutes) if payload.ttl_minutes else None
    result = await create_check_in(
        current_user['id'],
        payload.place_id,
        activity=payload.activity,
        privacy=payload.privacy,
        ttl=ttl,
        expires_at=payload.expires_at,
    )
    return respond(result, response)


@router.get('/active', response_model=ResultOut[List[CheckInView]])
async def active(response: Response, current_user: dict = Depends(get_current_user)):
    return respond(await list_active(viewer_id=current_user['id']), response)


@router.get('/by-place', response_model=ResultOut[List[PlaceGroup]])
async def by_place(response: Response, current_user: dict = Depends(get_current_user)):
    # the ordered mapping goes out as a list to keep first-seen place order in JSON
    result = await group_by_place(viewer_id=current_user['id'])
    return respond(result, response, transform=lambda groups: list(groups.values()))


@router.patch('/{check_in_id}', response_model=ResultOut[CheckInView])
async def update(
    check_in_id: str,
    payload: CheckInUpdateIn,
    response: Response,
    current_user: dict = Depends(get_current_user),
):
    fields = payload.model_dump(exclude_unset=True)
    return respond(await update_check_in(check_in_id, current_user['id'], fields), response)


@router.delete('/{check_in_id}', response_model=ResultOut[CheckInOut])
async def expire(check_in_id: str, response: Response, current_user: dict = Depends(get_current_user)):
    return respond(await expire_check_in(check_in_id, current_user['id']), response)
