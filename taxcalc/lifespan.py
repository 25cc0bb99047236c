from __future__ import annotations

import inspect
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncContextManager

from fastapi import FastAPI

from taxcalc.config import get_settings
from taxcalc.core.rates import seed_default_years
from taxcalc.service import TaxCalculator
from taxcalc.store.sqlite import BracketStore, connect

Hook = Callable[[FastAPI], Awaitable[None] | None]

_STATE_ATTRS = ("settings", "store", "calculator", "seeded_years", "telemetry_handler", "app_label")


def _open_telemetry_sink(logger: logging.Logger, app_label: str, log_dir: str | None) -> logging.Handler | None:
    if not log_dir:
        return None
    logs_dir = Path(log_dir)
    try:
        logs_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        logger.warning("Unable to create logs directory %s: %s", logs_dir, exc)
        return None
    handler = logging.FileHandler(logs_dir / f"{app_label}.log", encoding="utf-8")
    handler.setLevel(logging.INFO)
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s - %(message)s"))
    logger.addHandler(handler)
    return handler


async def _invoke_hook(hook: Hook | None, app: FastAPI) -> None:
    if hook is None:
        return
    try:
        result = hook(app)
        if inspect.isawaitable(result):
            await result  # type: ignore[func-returns-value]
    except Exception:  # pragma: no cover - hooks are user provided
        logging.getLogger("taxcalc").exception("Application lifecycle hook failed")


def build_application_lifespan(
    app_label: str,
    *,
    startup_hook: Hook | None = None,
    shutdown_hook: Hook | None = None,
) -> Callable[[FastAPI], AsyncContextManager[None]]:
    base_logger = logging.getLogger("taxcalc")

    @asynccontextmanager
    async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
        settings = get_settings()
        logger = base_logger.getChild(app_label)
        conn = connect(settings.db_path)
        store = BracketStore(conn)
        telemetry_handler = None
        try:
            store.initialize()
            seeded = seed_default_years(store) if settings.seed_on_startup else []
            telemetry_handler = _open_telemetry_sink(logger, app_label, settings.log_dir)

            app.state.settings = settings
            app.state.store = store
            app.state.calculator = TaxCalculator(store)
            app.state.seeded_years = seeded
            app.state.telemetry_handler = telemetry_handler
            app.state.app_label = app_label

            logger.info(
                "Startup complete: db=%s years=%s seeded=%s",
                settings.db_path,
                len(store.list_supported_years()),
                len(seeded),
            )

            await _invoke_hook(startup_hook, app)
            yield
        finally:
            await _invoke_hook(shutdown_hook, app)
            conn.close()
            if telemetry_handler is not None:
                logger.removeHandler(telemetry_handler)
                telemetry_handler.close()
            for attr in _STATE_ATTRS:
                if hasattr(app.state, attr):
                    delattr(app.state, attr)
            logger.info("Shutdown complete")

    return _lifespan
