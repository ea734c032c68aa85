from edupay.core.ledger.acceptance import Accepted, PaymentDecision, Rejected, validate_payment
from edupay.core.ledger.balance import BalanceSnapshot, compute_balance, find_structure
from edupay.core.ledger.mutator import (
    apply_payment,
    derive_status,
    ledger_total,
    payments_for,
    recompute_status,
)
from edupay.core.ledger.session import SessionScope, scope_to_session, tag_session

__all__ = [
    "Accepted",
    "BalanceSnapshot",
    "PaymentDecision",
    "Rejected",
    "SessionScope",
    "apply_payment",
    "compute_balance",
    "derive_status",
    "find_structure",
    "ledger_total",
    "payments_for",
    "recompute_status",
    "scope_to_session",
    "tag_session",
    "validate_payment",
]
