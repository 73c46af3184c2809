import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from foghorn.api_routers.v1 import api_router
from foghorn.features.health.routes.health import router as health_router
from foghorn.middlewares.rate_limit import RateLimitMiddleware
from foghorn.platform.config import settings
from foghorn.platform.db.session import init_db
from foghorn.platform.exceptions import add_exception_handlers

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    yield


app = FastAPI(
    title=f"{settings.APP_NAME} API",
    description="Website monitoring: sitemap discovery, PageSpeed audits and cross-page issues",
    version="1.0.0",
    lifespan=lifespan,
)


@app.get("/", tags=["Info"])
def root():
    return {
        "app_name": f"{settings.APP_NAME} API",
        "version": "1.0.0",
        "docs_url": "/docs",
        "api_base": "/api/v1",
    }


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RateLimitMiddleware)

add_exception_handlers(app)

app.include_router(health_router)
app.include_router(api_router, prefix="/api/v1")
