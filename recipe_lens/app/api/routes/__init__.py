from fastapi import APIRouter

from recipe_lens.app.api.routes import extract, parser_stats

api_router = APIRouter()
api_router.include_router(extract.router)
api_router.include_router(parser_stats.router)
