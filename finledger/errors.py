"""Exceptions raised by the ledger core."""

from finledger.models.ledger import ValidationResult


class LedgerError(Exception):
    """Base exception for ledger operations."""
    pass


class ValidationError(LedgerError):
    """
    A mutation was rejected because the entity breaks a business rule.

    The ledger is left untouched when this is raised.
    """

    def __init__(self, result: ValidationResult):
        self.result = result
        messages = "; ".join(
            issue.message for issue in result.issues if issue.severity == "error"
        )
        super().__init__(f"Invalid {result.entity_type}: {messages}")

    @property
    def issues(self):
        return self.result.issues


class NotFoundError(LedgerError):
    """Entity not found in the ledger."""
    pass
