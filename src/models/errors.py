"""
Domain error hierarchy.

Every check runs before an aggregate is touched, so any of these leaves the
aggregate exactly as it was.
"""


class DomainError(Exception):
    """Base class for all Avatales domain errors"""

    def __init__(self, message: str, field: str = None):
        super().__init__(message)
        self.message = message
        self.field = field


class DomainValidationError(DomainError, ValueError):
    """Input failed validation (empty field, bad email, out-of-range number)"""


class InvalidStateTransition(DomainError):
    """Operation is not allowed from the aggregate's current status"""

    def __init__(self, message: str, current_state: str = None):
        super().__init__(message)
        self.current_state = current_state


class BusinessRuleViolation(DomainError):
    """A business rule forbids the operation (quota, family rules, caps)"""


class NotFoundError(DomainError):
    """Aggregate id not known to a repository"""

    def __init__(self, kind: str, aggregate_id: str):
        super().__init__(f"{kind} not found: {aggregate_id}")
        self.kind = kind
        self.aggregate_id = aggregate_id
