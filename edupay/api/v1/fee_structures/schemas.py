"""Fee structure schemas."""

from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field


class FeeComponentIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    amount: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)


class FeeStructureCreate(BaseModel):
    class_name: str = Field(..., min_length=1, max_length=50)
    academic_year: Optional[str] = Field(None, description="Defaults to the current session")
    components: List[FeeComponentIn] = Field(..., min_length=1)


class FeeStructureUpdate(BaseModel):
    """Replaces the whole component list. The total is always recomputed."""

    class_name: Optional[str] = Field(None, min_length=1, max_length=50)
    components: List[FeeComponentIn] = Field(..., min_length=1)


class FeeComponentResponse(BaseModel):
    name: str
    amount: Decimal

    class Config:
        from_attributes = True


class FeeStructureResponse(BaseModel):
    id: str
    class_name: str
    academic_year: str
    components: List[FeeComponentResponse]
    total: Decimal

    class Config:
        from_attributes = True
