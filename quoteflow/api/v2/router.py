from fastapi import APIRouter
from quoteflow.api.v2 import quotes

api_router = APIRouter()

api_router.include_router(quotes.router, tags=["quotes"])
