from .common import ApiModel, dump, dump_many
from .user_schemas import UserSummary, UserResponse
from .auth_schemas import UserRegister, UserLogin, ProfileUpdate, PasswordChange
from .loan_schemas import LoanRequest, LoanPayment, LoanResponse, LoanListType
from .rosca_schemas import (
    RoscaCreate,
    RoscaContribution,
    RoscaResponse,
    RoscaDetailResponse,
    RoscaMemberResponse,
    RoscaListType,
)
from .transaction_schemas import (
    TransactionCreate,
    TransactionStatusUpdate,
    TransactionResponse,
    TransactionSummary,
)
from .admin_schemas import (
    AdminStats,
    KycStatusUpdate,
    LoanStatusUpdate,
    DeactivateUserRequest,
    ExportType,
    ExportFormat,
)

__all__ = [
    # ============ COMMON ============
    "ApiModel", "dump", "dump_many",

    # ============ USERS / AUTH ============
    "UserSummary", "UserResponse",
    "UserRegister", "UserLogin", "ProfileUpdate", "PasswordChange",

    # ============ LOANS ============
    "LoanRequest", "LoanPayment", "LoanResponse", "LoanListType",

    # ============ ROSCA ============
    "RoscaCreate", "RoscaContribution", "RoscaResponse", "RoscaDetailResponse",
    "RoscaMemberResponse", "RoscaListType",

    # ============ TRANSACTIONS ============
    "TransactionCreate", "TransactionStatusUpdate", "TransactionResponse", "TransactionSummary",

    # ============ ADMIN ============
    "AdminStats", "KycStatusUpdate", "LoanStatusUpdate", "DeactivateUserRequest",
    "ExportType", "ExportFormat",
]
