from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from taxcalc.core.engine import TaxBracket
from taxcalc.store.sqlite import UNBOUNDED_SENTINEL, BracketRecord


class TaxBracketInput(BaseModel):
    min_income: Decimal = Field(..., ge=0)
    max_income: Decimal | None = None
    tax_rate: Decimal = Field(..., ge=0, le=1)
    description: str = ""

    @field_validator("max_income")
    @classmethod
    def normalize_max_income(cls, value: Decimal | None) -> Decimal | None:
        if value is None or value >= UNBOUNDED_SENTINEL:
            return None
        return value

    def to_bracket(self) -> TaxBracket:
        return TaxBracket(self.min_income, self.max_income, self.tax_rate, self.description)


class TaxYearInput(BaseModel):
    year: str
    brackets: list[TaxBracketInput] = Field(default_factory=list)


class TaxYearResult(BaseModel):
    year: str
    brackets_added: int
    success: bool
    message: str | None = None


class CalculateRequest(BaseModel):
    income: Decimal
    year: str

    model_config = ConfigDict(extra="forbid")


class BreakdownEntry(BaseModel):
    description: str
    taxable_amount: float
    tax_amount: float
    rate: float


class CalculateResponse(BaseModel):
    income: float
    year: str
    tax: int
    after_tax_income: float
    effective_rate: float
    breakdown: list[BreakdownEntry]


class TaxBracketRow(BaseModel):
    id: int
    income_year: str
    bracket_order: int
    min_income: float
    max_income: float | None
    tax_rate: float
    description: str
    created_at: str
    updated_at: str

    @classmethod
    def from_record(cls, record: BracketRecord) -> "TaxBracketRow":
        return cls(
            id=record.id,
            income_year=record.income_year,
            bracket_order=record.bracket_order,
            min_income=float(record.min_income),
            max_income=None if record.max_income is None else float(record.max_income),
            tax_rate=float(record.tax_rate),
            description=record.description,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )


class HealthStatus(BaseModel):
    status: str
    database: str
    timestamp: str
    version: str
    sha: str
    default_year: str
