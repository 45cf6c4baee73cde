from contextlib import asynccontextmanager
from typing import Optional
import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from storefront.api import catalog, contact, estimate
from storefront.services.catalog import Catalog
from storefront.services.ledger import LedgerRegistry
from storefront.services.store import BlobStore, open_store

logger = logging.getLogger(__name__)

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:5173,http://localhost:8080").split(",") if o.strip()]


def create_app(store: Optional[BlobStore] = None, catalog_service: Optional[Catalog] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "registry", None) is None:
            app.state.registry = LedgerRegistry(store or open_store())
        logger.info("Storefront estimator started store=%s", type(app.state.registry.store).__name__)
        yield

    app = FastAPI(title="Storefront Estimator", lifespan=lifespan)
    app.state.catalog = catalog_service or Catalog()
    app.state.registry = LedgerRegistry(store) if store is not None else None

    # CORS for the storefront frontend
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(catalog.router, prefix="/catalog", tags=["catalog"])
    app.include_router(estimate.router, prefix="/estimates", tags=["estimates"])
    app.include_router(contact.router, prefix="/contact", tags=["contact"])

    @app.get("/")
    async def root():
        return {"status": "ok", "service": "storefront-estimator"}

    return app


app = create_app()


def run() -> None:
    import uvicorn

    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    uvicorn.run(app, host=os.getenv("HOST", "0.0.0.0"), port=int(os.getenv("PORT", "8000")))
