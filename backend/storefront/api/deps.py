import threading

from fastapi import Request

from storefront.services.catalog import Catalog
from storefront.services.ledger import LedgerRegistry
from storefront.services.store import open_store

_registry_lock = threading.Lock()


def get_catalog(request: Request) -> Catalog:
    return request.app.state.catalog


def get_registry(request: Request) -> LedgerRegistry:
    state = request.app.state
    if getattr(state, "registry", None) is None:
        # app served without its lifespan (e.g. TestClient outside `with`)
        with _registry_lock:
            if getattr(state, "registry", None) is None:
                state.registry = LedgerRegistry(open_store())
    return state.registry
