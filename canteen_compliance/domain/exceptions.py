"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class NotFoundError(DomainException):
    """A referenced record does not exist"""

    pass


class StudentNotFoundError(NotFoundError):
    """Student lookup by student id returned nothing"""

    def __init__(self, student_id: str):
        super().__init__(f"Student not found: {student_id}")
        self.student_id = student_id


class TransactionNotFoundError(NotFoundError):
    """Transaction lookup by id returned nothing"""

    def __init__(self, transaction_id: str):
        super().__init__(f"Transaction not found: {transaction_id}")
        self.transaction_id = transaction_id


class StoreFailureError(DomainException):
    """Record store backend error (connection, constraint, timeout)"""

    pass


class CandidateFetchError(DomainException):
    """The set of transactions to sweep could not be loaded"""

    pass


class InvalidTransactionStateError(DomainException):
    """Operation is not valid for the transaction's status"""

    pass
