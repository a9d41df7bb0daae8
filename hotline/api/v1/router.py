from fastapi import APIRouter

from hotline.api.v1.endpoints import storage, voice

api_v1_router = APIRouter()

api_v1_router.include_router(voice.router, prefix="/voice", tags=["voice"])
api_v1_router.include_router(storage.router, prefix="/storage", tags=["storage"])
