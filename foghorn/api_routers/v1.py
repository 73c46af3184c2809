from fastapi import APIRouter

from foghorn.features.api_keys.routes.api_keys import router as api_keys_router
from foghorn.features.auth.routes.auth import router as auth_router
from foghorn.features.issues.routes.issues import router as issues_router
from foghorn.features.pages.routes.pages import router as pages_router
from foghorn.features.sites.routes.internal import router as internal_router
from foghorn.features.sites.routes.sites import router as sites_router
from foghorn.features.teams.routes.teams import router as teams_router

api_router = APIRouter()

api_router.include_router(auth_router)
api_router.include_router(api_keys_router)
api_router.include_router(teams_router)
api_router.include_router(sites_router)
api_router.include_router(pages_router)
api_router.include_router(issues_router)
api_router.include_router(internal_router)
