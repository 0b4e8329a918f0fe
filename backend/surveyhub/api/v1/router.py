from fastapi import APIRouter

from surveyhub.api.v1 import auth, categories, surveys, users

api_router = APIRouter()

api_router.include_router(auth.router)
api_router.include_router(users.router)
api_router.include_router(categories.router)
api_router.include_router(surveys.router)
