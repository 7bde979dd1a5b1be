from app.models.client import Client, ClientsDocument
from app.models.loan import Loan, LoanApplication, LoansDocument
from app.models.payment import Payment, PaymentsDocument
from app.models.token import TokensDocument

__all__ = [
    "Client",
    "ClientsDocument",
    "Loan",
    "LoanApplication",
    "LoansDocument",
    "Payment",
    "PaymentsDocument",
    "TokensDocument",
]
