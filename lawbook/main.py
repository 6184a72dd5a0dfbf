import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from lawbook.core import config
from lawbook.database import Base, engine, ensure_appointment_schema, ensure_time_slot_schema
from lawbook.models import appointment, lawyer, time_slot, user  # noqa: F401
from lawbook.routes import appointment_routes, auth_routes, lawyer_routes, payment_routes, slot_routes

logging.basicConfig(level=config.LOG_LEVEL)
config.validate_runtime_config()

app = FastAPI()

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

logger = logging.getLogger(__name__)


@app.on_event('startup')
def initialize_database() -> None:
    try:
        Base.metadata.create_all(bind=engine)
        ensure_time_slot_schema()
        ensure_appointment_schema()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and Postgres credentials.')


@app.get('/')
def root():
    return {'status': 'Lawyer Booking API Running'}


app.include_router(auth_routes.router, prefix='/auth')
app.include_router(lawyer_routes.router, prefix='/lawyers')
app.include_router(slot_routes.router, prefix='/slots')
app.include_router(appointment_routes.router, prefix='/appointments')
app.include_router(payment_routes.router, prefix='/api')
