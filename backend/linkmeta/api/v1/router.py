from fastapi import APIRouter

from linkmeta.api.v1 import resolve

api_router = APIRouter()

api_router.include_router(resolve.router, tags=["Link metadata"])
