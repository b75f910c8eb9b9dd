class AppException(Exception):
    """
    Base application exception.

    Subclasses set a stable ``kind`` that API clients can match on and the
    HTTP status the API layer answers with.
    """

    kind = "app_error"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(AppException):
    kind = "not_found"
    status_code = 404
