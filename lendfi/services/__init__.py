from .auth import verify_password, get_password_hash, create_access_token, create_user_token, verify_token
from .user_service import UserService
from .loan_service import LoanService, compute_repayment_terms
from .rosca_service import RoscaService, build_invite_link
from .transaction_service import TransactionService, summarize
from .admin_service import AdminService

__all__ = [
    "verify_password", "get_password_hash", "create_access_token", "create_user_token", "verify_token",
    "UserService",
    "LoanService", "compute_repayment_terms",
    "RoscaService", "build_invite_link",
    "TransactionService", "summarize",
    "AdminService",
]
