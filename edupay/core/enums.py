from enum import Enum


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    STAFF = "STAFF"
    ACCOUNTS = "ACCOUNTS"


class Gender(str, Enum):
    MALE = "Male"
    FEMALE = "Female"


class FeeStatus(str, Enum):
    PAID = "PAID"
    PARTIAL = "PARTIAL"
    UNPAID = "UNPAID"


class PaymentType(str, Enum):
    MONTHLY = "MONTHLY"
    TERM = "TERM"
    YEARLY = "YEARLY"
    PART = "PART"


class PaymentMethod(str, Enum):
    CASH = "CASH"
    CARD = "CARD"
    ONLINE = "ONLINE"
    CHEQUE = "CHEQUE"


class RejectionReason(str, Enum):
    NON_POSITIVE_AMOUNT = "NON_POSITIVE_AMOUNT"
    EXCEEDS_OUTSTANDING_BALANCE = "EXCEEDS_OUTSTANDING_BALANCE"
    CONCURRENT_MUTATION_CONFLICT = "CONCURRENT_MUTATION_CONFLICT"


class ActivityAction(str, Enum):
    LOGIN = "LOGIN"
    PAYMENT_COLLECTED = "PAYMENT_COLLECTED"
    STUDENT_ADDED = "STUDENT_ADDED"
    STUDENT_UPDATED = "STUDENT_UPDATED"
    DISCOUNT_APPLIED = "DISCOUNT_APPLIED"
    STRUCTURE_UPDATED = "STRUCTURE_UPDATED"
    STRUCTURE_DELETED = "STRUCTURE_DELETED"
