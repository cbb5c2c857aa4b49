from contextlib import asynccontextmanager

from fastapi import FastAPI

from premium_push.config import configure_logging
from premium_push.database.connection import close_mongo_connection, connect_to_mongo
from premium_push.routers.devices import router as devices_router
from premium_push.routers.entitlements import router as entitlements_router
from premium_push.routers.notifications import router as notifications_router
from premium_push.utils.notifications import close_sender
from premium_push.utils.plan_cache import close_redis


@asynccontextmanager
async def lifespan(app: FastAPI):

    configure_logging()
    await connect_to_mongo()
    try:
        yield
    finally:
        await close_sender()
        await close_redis()
        await close_mongo_connection()


app = FastAPI(title="Premium Push", lifespan=lifespan)


app.include_router(entitlements_router)
app.include_router(notifications_router)
app.include_router(devices_router)


@app.get("/")
async def root():

    return {"message": "premium push service"}
