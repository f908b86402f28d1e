"""
Domain errors raised by the service layer.

The lifecycle engine itself is total and never raises these; they come from
input validation (before any write) and from the transactional apply step.
"""


class LeadflowError(Exception):
    """Base class — carries an HTTP status hint for the Flask error handler."""
    status_code = 500

    def to_dict(self):
        return {'error': str(self), 'kind': type(self).__name__}


class LeadNotFound(LeadflowError):
    status_code = 404

    def __init__(self, lead_id):
        self.lead_id = lead_id
        super().__init__(f"Lead '{lead_id}' not found")


class TaskNotFound(LeadflowError):
    status_code = 404

    def __init__(self, task_id, lead_id=None):
        self.task_id = task_id
        self.lead_id = lead_id
        if lead_id:
            message = f"Task '{task_id}' not found for lead '{lead_id}'"
        else:
            message = f"Task '{task_id}' not found"
        super().__init__(message)


class TransactionConflict(LeadflowError):
    """Concurrent write to the same lead aggregate. Safe to retry with a fresh read."""
    status_code = 409

    def __init__(self, lead_id, attempts=1):
        self.lead_id = lead_id
        self.attempts = attempts
        super().__init__(
            f"Concurrent update to lead '{lead_id}' — gave up after {attempts} attempt(s)"
        )


class InvalidInteractionShape(LeadflowError):
    """Input rejected before any write."""
    status_code = 400

    def __init__(self, message, field=None):
        self.field = field
        super().__init__(message)

    def to_dict(self):
        data = super().to_dict()
        if self.field:
            data['field'] = self.field
        return data
