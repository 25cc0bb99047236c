from taxcalc.store.sqlite import (
    UNBOUNDED_SENTINEL,
    BracketRecord,
    BracketStore,
    connect,
    open_store,
)

__all__ = ["UNBOUNDED_SENTINEL", "BracketRecord", "BracketStore", "connect", "open_store"]
