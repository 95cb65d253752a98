"""
Schedule Persistence Module

Stores repayment schedule rows and the loan-level aggregates derived from
them. A schedule is always replaced as a whole.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List
import logging

from .currency import Currency
from .exceptions import LoanNotFoundError
from .models import ScheduleRow
from .storage import StorageInterface

logger = logging.getLogger("loan_schedule.repository")


def _serialize(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, Currency):
        return value.code
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


class ScheduleRepository:
    """Schedule rows keyed ``{loan_id}_{installment_number}``"""

    def __init__(self, storage: StorageInterface):
        self.storage = storage

        self.schedule_table = "repayment_schedules"
        self.loans_table = "loans"

    def get_schedule(self, loan_id: str) -> List[ScheduleRow]:
        rows = [
            ScheduleRow.from_dict(data)
            for data in self.storage.find(self.schedule_table, {"loan_id": loan_id})
        ]
        rows.sort(key=lambda row: row.installment_number)
        return rows

    def replace_schedule(self, loan_id: str, rows: List[ScheduleRow]) -> int:
        """
        Delete every stored row for the loan and insert the new set.

        Runs in one storage transaction; joins the caller's transaction when
        one is already open.

        Returns:
            Number of rows removed
        """
        with self.storage.atomic():
            removed = self.storage.delete_where(self.schedule_table, {"loan_id": loan_id})
            for row in rows:
                self.storage.save(self.schedule_table, row.id, row.to_dict())

        logger.debug("Replaced %d schedule rows with %d for loan %s", removed, len(rows), loan_id)
        return removed

    def update_row(self, row: ScheduleRow) -> None:
        """Persist payment state of an existing row"""
        self.storage.save(self.schedule_table, row.id, row.to_dict())

    def update_loan(self, loan_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Merge ``fields`` into the stored loan record"""
        loan_dict = self.storage.load(self.loans_table, loan_id)
        if not loan_dict:
            raise LoanNotFoundError(f"Loan {loan_id} not found")

        for key, value in fields.items():
            loan_dict[key] = _serialize(value)
        loan_dict['updated_at'] = datetime.now(timezone.utc).isoformat()

        self.storage.save(self.loans_table, loan_id, loan_dict)
        return loan_dict
