from decimal import Decimal

import pytest

from edupay.core.enums import FeeStatus
from edupay.core.exceptions import LedgerContractError
from edupay.core.ledger import apply_payment, compute_balance, derive_status, ledger_total, recompute_status

from factories import class10_structure, make_payment, make_student


def test_paying_the_exact_balance_settles_the_account() -> None:
    student = make_student(status=FeeStatus.PARTIAL)

    updated = apply_payment(student, [class10_structure()], make_payment("17000"))

    assert updated.total_paid == Decimal("27000")
    assert updated.status == FeeStatus.PAID
    assert updated.version == student.version + 1
    assert compute_balance(updated, [class10_structure()]).balance_due == Decimal("0")


def test_two_payments_reach_paid_and_a_third_is_refused() -> None:
    structures = [class10_structure()]
    student = make_student(status=FeeStatus.PARTIAL)

    student = apply_payment(student, structures, make_payment("5000", payment_id="pay-1"))
    assert student.status == FeeStatus.PARTIAL
    student = apply_payment(student, structures, make_payment("12000", payment_id="pay-2"))
    assert student.status == FeeStatus.PAID

    with pytest.raises(LedgerContractError):
        apply_payment(student, structures, make_payment("1", payment_id="pay-3"))


def test_rejected_payment_cannot_be_applied() -> None:
    student = make_student()

    with pytest.raises(LedgerContractError):
        apply_payment(student, [class10_structure()], make_payment("17001"))
    assert student.total_paid == Decimal("10000")


def test_payment_for_another_student_is_a_contract_error() -> None:
    with pytest.raises(LedgerContractError):
        apply_payment(make_student(), [class10_structure()], make_payment("100", student_id="st2"))


def test_total_paid_never_decreases_and_status_never_regresses() -> None:
    structures = [class10_structure()]
    student = make_student(total_paid=Decimal("0"), status=FeeStatus.UNPAID)
    order = [FeeStatus.UNPAID, FeeStatus.PARTIAL, FeeStatus.PAID]
    payments = []
    for i, amount in enumerate(["1000", "6000", "250.50", "19749.50"]):
        payment = make_payment(amount, payment_id=f"pay-{i}")
        updated = apply_payment(student, structures, payment)
        assert updated.total_paid > student.total_paid
        assert order.index(updated.status) >= order.index(student.status)
        payments.append(payment)
        student = updated

    assert student.status == FeeStatus.PAID
    assert ledger_total(payments, "st1") == student.total_paid


def test_status_rule_resolves_equality_to_paid() -> None:
    assert derive_status(Decimal("100"), Decimal("100")) == FeeStatus.PAID
    assert derive_status(Decimal("1"), Decimal("100")) == FeeStatus.PARTIAL
    assert derive_status(Decimal("0"), Decimal("100")) == FeeStatus.UNPAID


def test_recompute_status_after_discount_settles_account() -> None:
    student = make_student(discount=Decimal("17500"), status=FeeStatus.PARTIAL)

    updated = recompute_status(student, [class10_structure()])

    assert updated.status == FeeStatus.PAID
    assert updated.total_paid == student.total_paid


def test_recompute_status_keeps_instance_when_unchanged() -> None:
    student = make_student(status=FeeStatus.PARTIAL)

    assert recompute_status(student, [class10_structure()]) is student
