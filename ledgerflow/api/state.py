"""
Shared application state for the API: one BookkeepingFacade per process.
"""
import threading
from typing import Optional

from ledgerflow.common.config import Settings
from ledgerflow.facade import BookkeepingFacade

_lock = threading.Lock()
_facade: Optional[BookkeepingFacade] = None


def get_facade() -> BookkeepingFacade:
    """
    FastAPI dependency returning the process-wide facade.
    Built lazily from Settings.load() on first use.
    """
    global _facade
    with _lock:
        if _facade is None:
            _facade = BookkeepingFacade(Settings.load())
        return _facade


def set_facade(facade: Optional[BookkeepingFacade]) -> None:
    """Replace the facade (None resets to lazy construction)."""
    global _facade
    with _lock:
        _facade = facade
