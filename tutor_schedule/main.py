from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI

from tutor_schedule.config import settings
from tutor_schedule.db import Base, engine
from tutor_schedule.metrics import flush_metrics
from tutor_schedule.route_logging import EndpointNameRoute
from tutor_schedule.routers import availability

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s %(levelname)s %(name)s %(message)s',
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    Base.metadata.create_all(bind=engine)
    logger.info('startup app=%s env=%s timezone=%s', settings.app_name, settings.app_env, settings.app_timezone)
    yield
    flush_metrics()


app = FastAPI(title=settings.app_name, version='0.1.0', lifespan=lifespan)
app.router.route_class = EndpointNameRoute

app.include_router(availability.router)


@app.get('/health')
def health():
    return {'status': 'ok', 'app': settings.app_name, 'env': settings.app_env}
