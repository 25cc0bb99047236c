import logging
from datetime import datetime, timezone

from fastapi import APIRouter, FastAPI, HTTPException, Request

from taxcalc.config import Settings, get_settings
from taxcalc.core.models import (
    CalculateRequest,
    CalculateResponse,
    HealthStatus,
    TaxBracketInput,
    TaxBracketRow,
    TaxYearInput,
    TaxYearResult,
)
from taxcalc.errors import TaxCalcError, UnsupportedYearError, status_for
from taxcalc.lifespan import build_application_lifespan
from taxcalc.service import TaxCalculator
from taxcalc.store.sqlite import BracketStore
from taxcalc.ui.router import router as ui_router

logger = logging.getLogger("taxcalc")


async def _announce_supported_years(app: FastAPI) -> None:
    store: BracketStore = app.state.store
    settings: Settings = app.state.settings
    logger.info(
        "Tax calculator API ready; default_year=%s supported_years=%s",
        settings.default_year,
        ", ".join(store.list_supported_years()) or "none",
    )


app = FastAPI(
    title="Progressive Tax Calculator",
    description="Computes bracket-based income tax for the income years held in the rate store.",
    lifespan=build_application_lifespan("api", startup_hook=_announce_supported_years),
)
app.include_router(ui_router)
router = APIRouter()


def _store(request: Request) -> BracketStore:
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise HTTPException(status_code=503, detail="Rate store not initialised")
    return store


def _calculator(request: Request) -> TaxCalculator:
    calculator = getattr(request.app.state, "calculator", None)
    if calculator is None:
        raise HTTPException(status_code=503, detail="Rate store not initialised")
    return calculator


def _http_error(exc: TaxCalcError) -> HTTPException:
    if isinstance(exc, UnsupportedYearError):
        return HTTPException(status_code=404, detail=exc.user_message())
    return HTTPException(status_code=status_for(exc), detail=str(exc))


@router.get("/health", response_model=HealthStatus)
def health(request: Request) -> HealthStatus:
    settings = getattr(request.app.state, "settings", get_settings())
    store = getattr(request.app.state, "store", None)
    connected = store is not None and store.ping()
    return HealthStatus(
        status="ok" if connected else "error",
        database="connected" if connected else "disconnected",
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=settings.build_version,
        sha=settings.build_sha,
        default_year=settings.default_year,
    )


@router.get("/years", response_model=list[str])
def supported_years(request: Request) -> list[str]:
    return _store(request).list_supported_years()


@router.get("/years/{year}/brackets", response_model=list[TaxBracketRow])
def tax_brackets(year: str, request: Request) -> list[TaxBracketRow]:
    store = _store(request)
    rows = store.list_rows(year)
    if not rows:
        raise _http_error(UnsupportedYearError(year, store.list_supported_years()))
    return [TaxBracketRow.from_record(row) for row in rows]


@router.get("/brackets", response_model=list[TaxBracketRow])
def all_tax_brackets(request: Request) -> list[TaxBracketRow]:
    return [TaxBracketRow.from_record(row) for row in _store(request).list_rows()]


@router.post("/tax/calculate", response_model=CalculateResponse)
def calculate_tax(req: CalculateRequest, request: Request) -> CalculateResponse:
    if req.income < 0:
        raise HTTPException(status_code=422, detail="Income must be a positive number")
    calculator = _calculator(request)
    try:
        summary = calculator.summarize(req.year, req.income)
    except TaxCalcError as exc:
        raise _http_error(exc) from exc
    logger.info("Calculated tax for %s: income=%s tax=%s", req.year, req.income, summary.tax)
    return CalculateResponse.model_validate(summary.to_dict())


@router.post("/years", response_model=TaxYearResult)
def add_tax_year(req: TaxYearInput, request: Request) -> TaxYearResult:
    store = _store(request)
    if not req.year or not req.brackets:
        return TaxYearResult(
            year=req.year,
            brackets_added=0,
            success=False,
            message="Failed to add tax year: Year and brackets are required",
        )
    try:
        added = store.add_tax_year(req.year, [bracket.to_bracket() for bracket in req.brackets])
    except TaxCalcError as exc:
        logger.warning("Rejected tax year %s: %s", req.year, exc)
        return TaxYearResult(
            year=req.year,
            brackets_added=0,
            success=False,
            message=f"Failed to add tax year: {exc}",
        )
    return TaxYearResult(
        year=req.year,
        brackets_added=added,
        success=True,
        message=f"Successfully added tax year {req.year} with {added} brackets",
    )


@router.put("/brackets/{bracket_id}", response_model=TaxBracketRow)
def update_tax_bracket(bracket_id: int, req: TaxBracketInput, request: Request) -> TaxBracketRow:
    try:
        record = _store(request).update_bracket(bracket_id, req.to_bracket())
    except TaxCalcError as exc:
        raise _http_error(exc) from exc
    return TaxBracketRow.from_record(record)


@router.delete("/years/{year}")
def delete_tax_year(year: str, request: Request) -> dict[str, bool]:
    return {"deleted": _store(request).delete_tax_year(year)}


app.include_router(router)
