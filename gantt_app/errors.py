"""Error kinds surfaced by the timeline engine.

Every error carries a short ``kind`` string (used as the ``error`` field of
JSON responses) and the HTTP status the web layer answers with.
"""


class GanttError(Exception):
    kind = 'GanttError'
    status_code = 400

    def __init__(self, message=None):
        super().__init__(message or self.kind)
        self.message = message or self.kind

    def to_dict(self):
        return {'success': False, 'error': self.kind, 'message': self.message}


class ValidationError(GanttError):
    kind = 'ValidationError'


class InvalidDateOrder(ValidationError):
    kind = 'InvalidDateOrder'


class DuplicateIdentifier(GanttError):
    kind = 'DuplicateIdentifier'
    status_code = 409


class NotFound(GanttError):
    kind = 'NotFound'
    status_code = 404


class EmptyRange(GanttError):
    """No tasks to lay out. Callers render an empty state instead of failing."""
    kind = 'EmptyRange'
