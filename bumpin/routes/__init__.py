from fastapi import APIRouter
from .relationships import router as relationships_router
from .presence import router as presence_router
from .ws import router as ws_router

router = APIRouter()
router.include_router(relationships_router, prefix='/relationships', tags=['relationships'])
router.include_router(presence_router, prefix='/check-ins', tags=['check-ins'])
router.include_router(ws_router, prefix='/ws', tags=['ws'])
