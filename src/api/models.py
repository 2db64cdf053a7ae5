"""Pydantic models for API request/response schemas."""
from __future__ import annotations

from datetime import date
from typing import List, Optional

from pydantic import BaseModel, Field

from src.reporting.schemas import (
    ExpenseExportRow,
    GigExportRow,
    MileageExportRow,
    PayerExportRow,
    ScheduleCCalculationInput,
)


class ExportRequest(ScheduleCCalculationInput):
    """Request payload for every export endpoint.

    Carries the Schedule C calculation input plus what the documents need
    beyond it (payers, taxpayer identification, a generated date).
    """

    payers: List[PayerExportRow] = Field(default_factory=list)
    taxpayer_name: Optional[str] = None
    taxpayer_ssn: Optional[str] = None
    generated_date: Optional[date] = None

    def calculation_input(self) -> ScheduleCCalculationInput:
        return ScheduleCCalculationInput.model_validate(
            self.model_dump(include=set(ScheduleCCalculationInput.model_fields))
        )


class ValidationRequest(BaseModel):
    """Rows to check before exporting."""

    gigs: List[GigExportRow] = Field(default_factory=list)
    expenses: List[ExpenseExportRow] = Field(default_factory=list)
    mileage: List[MileageExportRow] = Field(default_factory=list)


class ValidationIssueResponse(BaseModel):
    severity: str
    category: str
    record_id: str
    field: str
    message: str


class ValidationResponse(BaseModel):
    """Validation outcome returned by /export/validate."""

    valid: bool
    error_count: int
    warning_count: int
    total_issues: int
    errors: List[ValidationIssueResponse]
    warnings: List[ValidationIssueResponse]
    summary: str
