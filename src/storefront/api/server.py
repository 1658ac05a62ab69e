from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from storefront.api.routers import catalog
from storefront.bridge.base import StoreBridge
from storefront.bridge.debian import DebianStoreBridge
from storefront.catalog.aggregator import CatalogAggregator
from storefront.config.settings import StoreConfig, load_config
from storefront.status.tracker import InstallStatusTracker
from storefront.version import get_version


def default_bridge(config: StoreConfig) -> Optional[StoreBridge]:
    return DebianStoreBridge() if config.native else None


def create_app(
    config: Optional[StoreConfig] = None, bridge: Optional[StoreBridge] = None
) -> FastAPI:
    config = config or load_config()
    if bridge is None:
        bridge = default_bridge(config)
    tracker = InstallStatusTracker.from_config(config, bridge) if bridge else None

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        yield
        if tracker is not None:
            await tracker.close()

    app = FastAPI(
        title="Storefront API",
        description="Catalog and install status for the application store.",
        version=get_version(),
        lifespan=lifespan,
    )

    if config.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=config.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.state.config = config
    app.state.aggregator = CatalogAggregator(config, bridge=bridge)
    app.state.tracker = tracker
    app.include_router(catalog.router)
    return app
