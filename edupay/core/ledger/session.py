from typing import Iterable, List

from pydantic import BaseModel

from edupay.core.domain import FeeStructure, PaymentRecord, Student


class SessionScope(BaseModel):
    """Students, structures and payments of a single academic session."""

    session: str
    students: List[Student]
    structures: List[FeeStructure]
    payments: List[PaymentRecord]


def scope_to_session(
    students: Iterable[Student],
    structures: Iterable[FeeStructure],
    payments: Iterable[PaymentRecord],
    session: str,
) -> SessionScope:
    scoped_students = [s for s in students if s.academic_year == session]
    scoped_structures = [st for st in structures if st.academic_year == session]
    # Payments carry no session; they belong to the session of their student
    student_ids = {s.id for s in scoped_students}
    scoped_payments = [p for p in payments if p.student_id in student_ids]
    return SessionScope(
        session=session,
        students=scoped_students,
        structures=scoped_structures,
        payments=scoped_payments,
    )


def tag_session(students: Iterable[Student], session: str) -> List[Student]:
    """Bind incoming students to the active session, whatever session they arrived with."""
    return [s.model_copy(update={"academic_year": session}) for s in students]
