"""Row and summary models for CPA-ready tax exports.

Rows arrive from the persistence layer as plain records. The models declare
which fields are required, which are optional, and the default each optional
field takes, so the aggregator and serializers never null-coalesce ad hoc.
"""
from __future__ import annotations

from typing import Iterable, List, Literal, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

FilingStatus = Literal["single", "married_joint", "married_separate", "head"]
DeductionMethod = Literal["standard", "itemized"]
TaxEstimateSource = Literal["provided", "simplified"]


class ExportRow(BaseModel):
    """Base for flattened, display-ready export rows."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


def _none_to_zero(value):
    return 0.0 if value is None else value


class GigExportRow(ExportRow):
    """One income event."""

    gig_id: str = ""
    date: str = ""
    title: str = ""
    payer_name: str = ""
    payer_ein_or_ssn: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: str = "US"
    gross_amount: float = 0.0
    tips: float = 0.0
    per_diem: float = 0.0
    fees: float = 0.0
    other_income: float = 0.0
    payment_method: Optional[str] = None
    invoice_url: Optional[str] = None
    paid: bool = False
    withholding_federal: float = 0.0
    withholding_state: float = 0.0
    notes: Optional[str] = None

    _zero_defaults = field_validator(
        "gross_amount", "tips", "per_diem", "fees", "other_income",
        "withholding_federal", "withholding_state",
        mode="before",
    )(_none_to_zero)

    @property
    def net_amount(self) -> float:
        """Gross plus tips, per diem and other income, less fees."""
        return self.gross_amount + self.tips + self.per_diem + self.other_income - self.fees


class ExpenseExportRow(ExportRow):
    """One deductible expense."""

    expense_id: str = ""
    date: str = ""
    merchant: Optional[str] = None
    description: str = ""
    amount: float = 0.0
    gl_category: str = ""
    irs_schedule_c_line: str = ""
    # None means "use the default meals limitation" (50%)
    meals_percent_allowed: Optional[float] = None
    linked_gig_id: Optional[str] = None
    receipt_url: Optional[str] = None
    notes: Optional[str] = None

    _zero_defaults = field_validator("amount", mode="before")(_none_to_zero)

    @field_validator("irs_schedule_c_line", "gl_category", mode="before")
    @classmethod
    def _blank_codes(cls, value):
        return "" if value is None else str(value)


class MileageExportRow(ExportRow):
    """One business trip."""

    trip_id: str = ""
    date: str = ""
    origin: str = ""
    destination: str = ""
    business_miles: float = 0.0
    purpose: str = ""
    vehicle: Optional[str] = None
    # None means "use the calculation's mileage rate"
    standard_rate: Optional[float] = None
    calculated_deduction: Optional[float] = None
    notes: Optional[str] = None

    _zero_defaults = field_validator("business_miles", mode="before")(_none_to_zero)


class PayerExportRow(ExportRow):
    """One payer (client) record."""

    payer_id: str = ""
    payer_name: str = ""
    contact_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal: Optional[str] = None
    country: str = "US"
    ein_or_ssn: Optional[str] = None
    notes: Optional[str] = None


class TaxBreakdown(BaseModel):
    """Externally computed tax liability (state-aware withholding calculator)."""

    model_config = ConfigDict(populate_by_name=True)

    self_employment: float = Field(0.0, alias="selfEmployment")
    federal_income: float = Field(0.0, alias="federalIncome")
    state_income: float = Field(0.0, alias="stateIncome")
    total: float = 0.0


class ScheduleCCalculationInput(BaseModel):
    """Everything the Schedule C aggregator needs."""

    model_config = ConfigDict(populate_by_name=True)

    gigs: List[GigExportRow] = Field(default_factory=list)
    expenses: List[ExpenseExportRow] = Field(default_factory=list)
    mileage: List[MileageExportRow] = Field(default_factory=list)
    tax_year: int
    filing_status: FilingStatus = "single"
    state_of_residence: str = ""
    standard_or_itemized: DeductionMethod = "standard"
    include_tips: bool = True
    include_fees_as_deduction: bool = False
    mileage_rate: Optional[float] = None
    tax_breakdown: Optional[TaxBreakdown] = None


class ScheduleCSummary(BaseModel):
    """Schedule C profit or loss plus an informational tax estimate.

    Every currency field is rounded to cents.
    """

    tax_year: int
    filing_status: FilingStatus = "single"
    state_of_residence: str = ""
    standard_or_itemized: DeductionMethod = "standard"

    # Part I: Income
    gross_receipts: float = 0.0
    returns_and_allowances: float = 0.0
    other_income: float = 0.0
    total_income: float = 0.0

    # Part II: Expenses
    advertising: float = 0.0
    car_truck: float = 0.0
    commissions: float = 0.0
    contract_labor: float = 0.0
    depreciation: float = 0.0
    employee_benefit: float = 0.0
    insurance_other: float = 0.0
    interest_mortgage: float = 0.0
    interest_other: float = 0.0
    legal_professional: float = 0.0
    office_expense: float = 0.0
    rent_vehicles: float = 0.0
    rent_other: float = 0.0
    repairs_maintenance: float = 0.0
    supplies: float = 0.0
    taxes_licenses: float = 0.0
    travel: float = 0.0
    meals_allowed: float = 0.0
    utilities: float = 0.0
    wages: float = 0.0
    other_expenses_total: float = 0.0
    total_expenses: float = 0.0

    net_profit: float = 0.0

    # Tax estimates (informational only)
    se_tax_basis: float = 0.0
    est_se_tax: float = 0.0
    est_federal_income_tax: float = 0.0
    est_state_income_tax: float = 0.0
    est_total_tax: float = 0.0
    set_aside_suggested: float = 0.0

    tax_estimate_source: TaxEstimateSource = "simplified"
    tax_estimate_warnings: List[str] = Field(default_factory=list)


GIGS_CSV_HEADERS = (
    "gig_id",
    "date",
    "title",
    "payer_name",
    "payer_ein_or_ssn",
    "city",
    "state",
    "country",
    "gross_amount",
    "tips",
    "per_diem",
    "fees",
    "other_income",
    "payment_method",
    "invoice_url",
    "paid",
    "withholding_federal",
    "withholding_state",
    "notes",
)

EXPENSES_CSV_HEADERS = (
    "expense_id",
    "date",
    "merchant",
    "description",
    "amount",
    "gl_category",
    "irs_schedule_c_line",
    "meals_percent_allowed",
    "linked_gig_id",
    "receipt_url",
    "notes",
)

MILEAGE_CSV_HEADERS = (
    "trip_id",
    "date",
    "origin",
    "destination",
    "business_miles",
    "purpose",
    "vehicle",
    "standard_rate",
    "calculated_deduction",
)

PAYERS_CSV_HEADERS = (
    "payer_id",
    "payer_name",
    "contact_name",
    "email",
    "phone",
    "address",
    "city",
    "state",
    "postal",
    "country",
    "ein_or_ssn",
    "notes",
)

SCHEDULE_C_SUMMARY_CSV_HEADERS = (
    "tax_year",
    "filing_status",
    "state_of_residence",
    "standard_or_itemized",
    "gross_receipts",
    "returns_and_allowances",
    "other_income",
    "total_income",
    "advertising",
    "car_truck",
    "commissions",
    "contract_labor",
    "depreciation",
    "employee_benefit",
    "insurance_other",
    "interest_mortgage",
    "interest_other",
    "legal_professional",
    "office_expense",
    "rent_vehicles",
    "rent_other",
    "repairs_maintenance",
    "supplies",
    "taxes_licenses",
    "travel",
    "meals_allowed",
    "utilities",
    "wages",
    "other_expenses_total",
    "total_expenses",
    "net_profit",
    "se_tax_basis",
    "est_se_tax",
    "est_federal_income_tax",
    "est_state_income_tax",
    "est_total_tax",
    "set_aside_suggested",
)

RowModel = TypeVar("RowModel", bound=BaseModel)


def coerce_rows(rows: Optional[Iterable], model: Type[RowModel]) -> List[RowModel]:
    """Turn plain dict records (or models) into ``model`` instances."""
    if not rows:
        return []
    coerced: List[RowModel] = []
    for row in rows:
        if isinstance(row, model):
            coerced.append(row)
        elif isinstance(row, BaseModel):
            coerced.append(model.model_validate(row.model_dump()))
        else:
            coerced.append(model.model_validate(dict(row)))
    return coerced
