from edupay.core.models.activity_log import ActivityLogRow
from edupay.core.models.fee_structure import FeeComponentRow, FeeStructureRow
from edupay.core.models.payment_record import PaymentRecordRow
from edupay.core.models.student import StudentRow

__all__ = [
    "ActivityLogRow",
    "FeeComponentRow",
    "FeeStructureRow",
    "PaymentRecordRow",
    "StudentRow",
]
