from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from .routes import router
from .routes.ws import poller
from .core import database_startup, init_metrics, shutdown_connections
from .error_handlers import register_error_handlers
import logging
from pythonjsonlogger import jsonlogger

# setup structured logging for the whole package
logger = logging.getLogger('bumpin')
if not logger.handlers:
    handler = logging.StreamHandler()
    formatter = jsonlogger.JsonFormatter('%(asctime)s %(levelname)s %(name)s %(message)s')
    handler.setFormatter(formatter)
    logger.addHandler(handler)
logger.setLevel(logging.INFO)

app = FastAPI(title="Bumpin API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=['*'],
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

register_error_handlers(app)
app.include_router(router, prefix="/api")


@app.get('/healthz')
async def healthz():
    return {'status': 'ok'}


@app.middleware('http')
async def log_requests(request: Request, call_next):
    logger.info({'msg': 'request_start', 'method': request.method, 'path': request.url.path})
    response = await call_next(request)
    logger.info({'msg': 'request_end', 'status': response.status_code})
    return response


@app.on_event("startup")
async def startup():
    # Best-effort init, don't block app from starting if a dependency fails
    if not await database_startup():
        logger.warning({'msg': 'database_unavailable_at_startup'})
    init_metrics()


@app.on_event("shutdown")
async def shutdown():
    poller.detach_all()
    await shutdown_connections()
