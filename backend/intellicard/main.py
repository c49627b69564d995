"""
IntelliCard API

Flashcard study backend: card sets, cards, SM-2 scheduled reviews, access
requests for private sets, and LLM card generation from documents.

Run:
    uvicorn intellicard.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from intellicard.config import settings
from intellicard.db import init_db
from intellicard.middleware import setup_error_handling
from intellicard.routers import (
    access_requests_router,
    card_sets_router,
    cards_router,
    study_router,
)

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    logger.info(f"{settings.APP_NAME} started")
    yield


app = FastAPI(title=f"{settings.APP_NAME} API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
setup_error_handling(app, debug=settings.DEBUG)

app.include_router(card_sets_router.router, prefix=settings.API_PREFIX)
app.include_router(access_requests_router.router, prefix=settings.API_PREFIX)
app.include_router(cards_router.router, prefix=settings.API_PREFIX)
app.include_router(study_router.router, prefix=settings.API_PREFIX)


@app.get("/")
async def root():
    return {"message": f"{settings.APP_NAME} API"}
