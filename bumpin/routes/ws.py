import logging
from fastapi import APIRouter, WebSocket, WebSocketDisconnect, Query
from fastapi.encoders import jsonable_encoder
from ..auth import decode_token
from ..errors import ValidationError
from ..presence import list_active, group_by_place
from ..relationships import list_relationships
from ..resources import table_query, result_query
from ..sync_poller import SyncPoller, DEFAULT_INTERVAL_MS

logger = logging.getLogger(__name__)

router = APIRouter()

poller = SyncPoller()

MIN_INTERVAL_MS = 1000


def resource_query(resource: str, user_id: str):
    """Queries a client may subscribe to; presence and relationships are scoped to the caller.

    Raw table reads are limited to ``place`` without a filter.
    """
    if resource == 'presence':
        return result_query(list_active, viewer_id=user_id)
    if resource == 'presence_by_place':
        return result_query(group_by_place, viewer_id=user_id)
    if resource == 'relationships':
        return result_query(list_relationships, user_id)
    if resource == 'place':
        return table_query('place')
    raise ValidationError(f'Unknown resource {resource!r}.')


@router.websocket('/sync')
async def sync_ws(
    websocket: WebSocket,
    resource: str = Query(...),
    interval_ms: int = Query(DEFAULT_INTERVAL_MS),
    token: str = Query(None),
):
    user = None
    if token:
        user = decode_token(token)
    if not user:
        await websocket.close(code=1008)
        return
    try:
        query = resource_query(resource, user['id'])
    except ValidationError as e:
        logger.info(f'sync refused for {user["id"]}: {e.message}')
        await websocket.close(code=1008)
        return
    await websocket.accept()

    async def push(data):
        await websocket.send_json({'data': jsonable_encoder(data), 'error': None})

    async def push_error(message):
        await websocket.send_json({'data': None, 'error': {'code': 'SYNC_FETCH_FAILED', 'message': message}})

    handle = poller.attach(
        query,
        interval_ms=max(interval_ms, MIN_INTERVAL_MS),
        on_update=push,
        on_error=push_error,
    )
    try:
        while True:
            # nothing is expected from the client; this just waits for the disconnect
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.info(f'sync socket closed for {user["id"]} ({resource})')
    finally:
        poller.detach(handle)
