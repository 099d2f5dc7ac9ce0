from fastapi import APIRouter

from nestegg.api.routers import categories

api_router = APIRouter()
api_router.include_router(categories.router)
