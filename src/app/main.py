# src/app/main.py
from __future__ import annotations
import logging
import sys
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.app.config import settings
from src.app.deps import get_dispatcher, get_session_factory
from src.app.routers.admin_catalog import ingredients_router, tags_router
from src.app.routers.admin_units import router as admin_units_router
from src.app.routers.communities import router as communities_router
from src.app.services.events import log_domain_event

# Plain stdout logging (works for dev and containers)
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

app = FastAPI(title="Recipe Catalog Moderation API", version="0.3.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.FRONTEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Admin catalog
app.include_router(ingredients_router)
app.include_router(tags_router)
app.include_router(admin_units_router)

# Community-scoped
app.include_router(communities_router)


@app.on_event("startup")
async def startup() -> None:
    get_session_factory()
    get_dispatcher().subscribe(log_domain_event)


@app.on_event("shutdown")
async def shutdown() -> None:
    get_dispatcher().unsubscribe(log_domain_event)


@app.get("/health")
def health():
    return {"ok": True}
