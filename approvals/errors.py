"""
Workflow Errors
Failures raised by the record store and the workflow engine.
HTTP and email boundaries translate them into responses.
"""


class WorkflowError(Exception):
    """Base class for workflow and storage failures"""

    code = "WORKFLOW_ERROR"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(WorkflowError):
    """Caller input violates a precondition (empty title, unknown status...)"""

    code = "VALIDATION_ERROR"
    status_code = 400


class NotFoundError(WorkflowError):
    """Referenced submission id does not exist"""

    code = "NOT_FOUND"
    status_code = 404


class ConflictError(WorkflowError):
    """A submission with the same id is already stored"""

    code = "CONFLICT"
    status_code = 409


class PersistenceError(WorkflowError):
    """
    The durable layer failed to complete an operation.
    State is unknown afterwards: re-query by id before retrying.
    """

    code = "STORAGE_FAILURE"
    status_code = 500
