from decimal import Decimal

from pydantic import BaseModel


class FinancialSummary(BaseModel):
    session: str
    total_students: int
    previous_year_dues: Decimal
    total_collected: Decimal
    outstanding_dues: Decimal


class InsightsResponse(BaseModel):
    summary: FinancialSummary
    insights: str
    # False when the fallback text was returned
    generated: bool
