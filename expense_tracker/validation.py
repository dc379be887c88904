"""Entry-point validation for expense forms.

Invalid input is rejected here, before an :class:`Expense` is ever built
or handed to the tracker.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

try:
    from .models import Category, Expense
except ImportError:  # pragma: no cover - fallback for direct execution
    from models import Category, Expense


class ValidationError(ValueError):
    """Raised when form input cannot become an expense."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


def expense_input_errors(amount, remarks: Optional[str], category: Optional[Category]) -> List[str]:
    """Return human readable problems with the input (empty when valid)."""
    errors: List[str] = []
    try:
        value = float(amount)
    except (TypeError, ValueError):
        errors.append("amount must be a number")
    else:
        if not value > 0:
            errors.append("amount must be greater than zero")
    if not (remarks or "").strip():
        errors.append("remarks are required")
    if category is None:
        errors.append("a category must be selected")
    return errors


def validate_expense_input(amount, remarks: Optional[str], category: Optional[Category]) -> None:
    errors = expense_input_errors(amount, remarks, category)
    if errors:
        raise ValidationError(errors)


@dataclass
class ExpenseForm:
    """Editable state behind an add/edit expense screen."""

    amount: float = 0.0
    remarks: str = ""
    category: Optional[Category] = None
    date: Optional[datetime] = None
    emoji: str = ""
    expense_id: Optional[int] = None

    @property
    def is_valid(self) -> bool:
        return not expense_input_errors(self.amount, self.remarks, self.category)

    def validate(self) -> None:
        validate_expense_input(self.amount, self.remarks, self.category)

    def to_expense(self, default_date: Optional[datetime] = None) -> Expense:
        """Build the record; raises :class:`ValidationError` for invalid input."""
        self.validate()
        return Expense(
            amount=float(self.amount),
            category=self.category,
            remarks=self.remarks.strip(),
            date=self.date or default_date or datetime.now(),
            emoji=self.emoji,
            id=self.expense_id,
        )

    @classmethod
    def from_expense(cls, expense: Expense) -> "ExpenseForm":
        return cls(
            amount=expense.amount,
            remarks=expense.remarks,
            category=expense.category,
            date=expense.date,
            emoji=expense.emoji,
            expense_id=expense.id,
        )
