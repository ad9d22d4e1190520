from __future__ import annotations

import contextlib
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from dotenv import load_dotenv

from persistence.factory import build_store
from persistence.interfaces import KeyedStore
from services import build_services
from settings import Settings, get_settings

logger = logging.getLogger(__name__)


@contextlib.asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        yield
    finally:
        await app.state.services.aclose()
        logger.info("APP: store closed")


def create_app(*, store: KeyedStore | None = None, settings: Settings | None = None) -> FastAPI:
    load_dotenv("local.env")

    from endpoints.analytics_endpoints import router as analytics_router
    from endpoints.auth_endpoints import router as auth_router
    from endpoints.notification_endpoints import router as notification_router
    from endpoints.profile_endpoints import router as profile_router
    from endpoints.screen_endpoints import router as screen_router
    from endpoints.validation_endpoints import router as validation_router

    settings = settings or get_settings()
    if store is None:
        store = build_store(settings)

    app = FastAPI(title="HomeScreen", lifespan=lifespan)
    app.state.settings = settings
    app.state.services = build_services(store, settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(auth_router)
    app.include_router(profile_router)
    app.include_router(screen_router)
    app.include_router(notification_router)
    app.include_router(analytics_router)
    app.include_router(validation_router)

    return app


app = create_app()
