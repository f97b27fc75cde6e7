from typing import Optional
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from api.assignment_api import router as assignment_router
from core.reconciler import BusRouteReconciler, build_reconciler


def create_app(reconciler: Optional[BusRouteReconciler] = None) -> FastAPI:
    app = FastAPI(
        title="TransTrack Route Service",
        description="Bus-to-route assignment reconciliation",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc"
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Raises ConfigurationError when no database is configured
    app.state.reconciler = reconciler or build_reconciler()
    logger.info("🚀 Route service app created")

    app.include_router(assignment_router)

    @app.get("/health")
    async def health():
        return {"status": "OK", "service": "routeservice"}

    return app
