"""Top-level API router, mounted under /api/v1."""

from fastapi import APIRouter

from signalist.api.routes import digest, news, system, watchlist

api_router = APIRouter()
api_router.include_router(watchlist.router, prefix="/watchlist", tags=["watchlist"])
api_router.include_router(news.router, prefix="/news", tags=["news"])
api_router.include_router(digest.router, prefix="/digest", tags=["digest"])
api_router.include_router(system.router, prefix="/system", tags=["system"])
