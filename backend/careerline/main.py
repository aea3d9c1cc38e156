"""Careerline FastAPI application entry point."""

import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from careerline.db.connection import Database
from careerline.hierarchy.permissions import PermissionFilter
from careerline.hierarchy.queries import TreeQueryService
from careerline.hierarchy.router import (
    get_node_service,
    get_permission_filter,
    get_query_service,
)
from careerline.hierarchy.router import router as timeline_router
from careerline.hierarchy.rules import HierarchyValidator, load_hierarchy_rules
from careerline.hierarchy.service import NodeService
from careerline.insights.router import get_insight_service
from careerline.insights.router import router as insights_router
from careerline.insights.service import InsightService


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage database lifecycle and service wiring."""
    # Load .env from backend/ directory
    load_dotenv(Path(__file__).resolve().parent.parent / ".env")

    db = await Database.connect(os.environ.get("CAREERLINE_DB_PATH", "careerline.db"))

    rules = load_hierarchy_rules(os.environ.get("CAREERLINE_HIERARCHY_RULES"))
    validator = HierarchyValidator(db, rules)

    # Node store
    node_service = NodeService(db, validator)
    app.dependency_overrides[get_node_service] = lambda: node_service

    # Read side
    queries = TreeQueryService(db)
    app.dependency_overrides[get_query_service] = lambda: queries

    # Owner-only until an access policy service is plugged in
    permissions = PermissionFilter()
    app.dependency_overrides[get_permission_filter] = lambda: permissions

    insight_service = InsightService(db, permissions)
    app.dependency_overrides[get_insight_service] = lambda: insight_service

    app.state.db = db
    yield

    await db.close()


app = FastAPI(
    title="Careerline",
    description="Career timeline hierarchy: milestones as an owner-scoped node tree",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=os.environ.get("CAREERLINE_CORS_ORIGINS", "http://localhost:5173").split(","),
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(timeline_router)
app.include_router(insights_router)


@app.get("/api/health")
async def health() -> dict:
    return {"status": "ok", "version": "0.1.0"}
