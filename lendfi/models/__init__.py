from .user_models import User, UserRole, KycStatus
from .loan_models import Loan, LoanStatus
from .rosca_models import Rosca, RoscaMembership, RoscaStatus
from .transaction_models import (
    Transaction,
    TransactionType,
    TransactionSubType,
    TransactionStatus,
    ReferenceType,
)
from .admin_models import AdminLog

__all__ = [
    "User", "UserRole", "KycStatus",
    "Loan", "LoanStatus",
    "Rosca", "RoscaMembership", "RoscaStatus",
    "Transaction", "TransactionType", "TransactionSubType", "TransactionStatus", "ReferenceType",
    "AdminLog",
]
