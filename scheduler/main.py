import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from scheduler.core import config
from scheduler.database import Base, engine, ensure_schema
from scheduler.graphql.schema import graphql_router
from scheduler.models import appointment, event, schedule, user  # noqa: F401  registers tables on Base
from scheduler.routes import (
    appointment_routes,
    availability_routes,
    event_routes,
    schedule_routes,
    session_routes,
    user_routes,
)

logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)
logger = logging.getLogger(__name__)

config.validate_runtime_config()

app = FastAPI(title='Scheduler API')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=['GET', 'POST', 'PATCH', 'DELETE', 'OPTIONS'],
    allow_headers=['Content-Type', 'Authorization'],
)


@app.middleware('http')
async def log_requests(request: Request, call_next):
    response = await call_next(request)
    logger.info('%s %s -> %s', request.method, request.url.path, response.status_code)
    return response


@app.on_event('startup')
def initialize_database() -> None:
    try:
        Base.metadata.create_all(bind=engine)
        ensure_schema()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL.')


@app.get('/')
def root():
    return {'status': 'Scheduler API Running'}


app.include_router(user_routes.router, prefix='/users')
app.include_router(session_routes.router, prefix='/sessions')
app.include_router(event_routes.router, prefix='/events')
app.include_router(schedule_routes.router, prefix='/schedules')
app.include_router(appointment_routes.router, prefix='/appointments')
app.include_router(availability_routes.router, prefix='/availability')
app.include_router(graphql_router, prefix='/graphql')
