class HabitServiceError(Exception):
    """Base for failures the service layer reports to API callers."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(HabitServiceError):
    status_code = 404


class ValidationError(HabitServiceError):
    status_code = 400


class ConflictError(HabitServiceError):
    status_code = 409


class UnauthorizedError(HabitServiceError):
    status_code = 401
