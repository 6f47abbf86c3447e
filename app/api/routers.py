from fastapi import APIRouter

from app.api.v1.challenge import router as challenge_router

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(challenge_router)
