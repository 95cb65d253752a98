"""
Ledger Module

Read and append access to loan products, loans and their transactions. The
transaction ledger is the source of truth for principal outstanding; entries
are never edited, only soft-deleted.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional
import logging

from .currency import ZERO, to_decimal
from .dates import DateLike, to_date
from .enums import TransactionType
from .exceptions import InvalidStateError, LoanNotFoundError, NotFoundError
from .models import Loan, LoanProduct, Transaction, new_record_id
from .storage import StorageInterface

logger = logging.getLogger("loan_schedule.ledger")


class LedgerReader:
    """Loads loans, products and transaction history from storage"""

    def __init__(self, storage: StorageInterface):
        self.storage = storage

        self.products_table = "loan_products"
        self.loans_table = "loans"
        self.transactions_table = "loan_transactions"

    def get_loan(self, loan_id: str) -> Optional[Loan]:
        loan_dict = self.storage.load(self.loans_table, loan_id)
        if loan_dict:
            return Loan.from_dict(loan_dict)
        return None

    def get_product(self, product_id: str) -> Optional[LoanProduct]:
        product_dict = self.storage.load(self.products_table, product_id)
        if product_dict:
            return LoanProduct.from_dict(product_dict)
        return None

    def list_loans(self) -> List[Loan]:
        return [Loan.from_dict(data) for data in self.storage.load_all(self.loans_table)]

    def list_transactions(self, loan_id: str, include_deleted: bool = False) -> List[Transaction]:
        """Transactions for a loan, oldest first"""
        transactions = [
            Transaction.from_dict(data)
            for data in self.storage.find(self.transactions_table, {"loan_id": loan_id})
        ]
        if not include_deleted:
            transactions = [t for t in transactions if not t.is_deleted]
        transactions.sort(key=lambda t: (t.transaction_date, t.created_at))
        return transactions

    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        data = self.storage.load(self.transactions_table, transaction_id)
        if data:
            return Transaction.from_dict(data)
        return None


class Ledger(LedgerReader):
    """Ledger reader plus the append-only write operations"""

    def save_product(self, product: LoanProduct) -> LoanProduct:
        product.updated_at = datetime.now(timezone.utc)
        self.storage.save(self.products_table, product.id, product.to_dict())
        return product

    def save_loan(self, loan: Loan) -> Loan:
        loan.updated_at = datetime.now(timezone.utc)
        self.storage.save(self.loans_table, loan.id, loan.to_dict())
        return loan

    def _require_loan(self, loan_id: str) -> Loan:
        loan = self.get_loan(loan_id)
        if not loan:
            raise LoanNotFoundError(f"Loan {loan_id} not found")
        return loan

    def _append(self, transaction: Transaction) -> Transaction:
        self.storage.save(self.transactions_table, transaction.id, transaction.to_dict())
        logger.info(
            "Recorded %s of %s on loan %s",
            transaction.transaction_type.value, transaction.amount, transaction.loan_id
        )
        return transaction

    def record_disbursement(self, loan_id: str, amount: Decimal, transaction_date: DateLike,
                            reference: Optional[str] = None) -> Transaction:
        """Record a disbursement; only those after the start date add principal"""
        self._require_loan(loan_id)
        amount = to_decimal(amount)
        if amount <= ZERO:
            raise InvalidStateError("Disbursement amount must be positive")

        now = datetime.now(timezone.utc)
        return self._append(Transaction(
            id=new_record_id(),
            created_at=now,
            updated_at=now,
            loan_id=loan_id,
            transaction_date=to_date(transaction_date),
            transaction_type=TransactionType.DISBURSEMENT,
            amount=amount,
            reference=reference,
        ))

    def record_repayment(self, loan_id: str, amount: Decimal, transaction_date: DateLike,
                         principal_applied: Optional[Decimal] = None,
                         interest_applied: Decimal = ZERO,
                         fee_applied: Decimal = ZERO,
                         reference: Optional[str] = None) -> Transaction:
        """
        Record a repayment and how it was split.

        Whatever is not applied to interest or fees goes to principal unless
        ``principal_applied`` is given explicitly.
        """
        self._require_loan(loan_id)
        amount = to_decimal(amount)
        interest_applied = to_decimal(interest_applied)
        fee_applied = to_decimal(fee_applied)
        if principal_applied is None:
            principal_applied = amount - interest_applied - fee_applied
        principal_applied = to_decimal(principal_applied)

        if amount <= ZERO:
            raise InvalidStateError("Repayment amount must be positive")
        if min(principal_applied, interest_applied, fee_applied) < ZERO:
            raise InvalidStateError("Repayment components cannot be negative")
        if principal_applied + interest_applied + fee_applied > amount:
            raise InvalidStateError(
                f"Repayment components exceed the amount received ({amount})"
            )

        now = datetime.now(timezone.utc)
        return self._append(Transaction(
            id=new_record_id(),
            created_at=now,
            updated_at=now,
            loan_id=loan_id,
            transaction_date=to_date(transaction_date),
            transaction_type=TransactionType.REPAYMENT,
            amount=amount,
            principal_applied=principal_applied,
            interest_applied=interest_applied,
            fee_applied=fee_applied,
            reference=reference,
        ))

    def soft_delete_transaction(self, loan_id: str, transaction_id: str) -> Transaction:
        """Mark a ledger entry deleted; it stays on file but stops counting"""
        transaction = self.get_transaction(transaction_id)
        if not transaction or transaction.loan_id != loan_id:
            raise NotFoundError(f"Transaction {transaction_id} not found on loan {loan_id}")

        transaction.is_deleted = True
        transaction.updated_at = datetime.now(timezone.utc)
        self.storage.save(self.transactions_table, transaction.id, transaction.to_dict())
        logger.info("Soft-deleted transaction %s on loan %s", transaction_id, loan_id)
        return transaction
