"""Balance calculation. Every consumer of a student's dues goes through compute_balance."""

from decimal import Decimal
from typing import Iterable, Optional

from pydantic import BaseModel

from edupay.core.domain import FeeStructure, Student


class BalanceSnapshot(BaseModel):
    gross_total: Decimal
    net_payable: Decimal
    balance_due: Decimal
    structure_found: bool

    class Config:
        frozen = True

    @property
    def amount_due(self) -> Decimal:
        """balance_due clamped at zero, for "due" badges only. Ledger figures use balance_due."""
        return max(Decimal("0"), self.balance_due)

    @property
    def overpaid(self) -> bool:
        return self.balance_due < 0


def find_structure(student: Student, structures: Iterable[FeeStructure]) -> Optional[FeeStructure]:
    """Structure for the student's class in the student's own session. Never matches on class alone."""
    for st in structures:
        if st.class_name == student.class_name and st.academic_year == student.academic_year:
            return st
    return None


def compute_balance(student: Student, structures: Iterable[FeeStructure]) -> BalanceSnapshot:
    structure = find_structure(student, structures)
    structure_total = structure.total if structure is not None else Decimal("0")
    gross = structure_total + student.previous_year_dues
    net = gross - student.discount
    return BalanceSnapshot(
        gross_total=gross,
        net_payable=net,
        balance_due=net - student.total_paid,
        structure_found=structure is not None,
    )
