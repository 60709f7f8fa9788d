class ServiceError(Exception):
    """Base error raised by the service layer; ``code`` is the HTTP status the API responds with."""

    code = 400

    def __init__(self, message, code=None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class UnauthorizedError(ServiceError):
    code = 401


class ForbiddenError(ServiceError):
    code = 403


class NotFoundError(ServiceError):
    code = 404


class ConflictError(ServiceError):
    code = 409


class BusinessRuleError(ServiceError):
    code = 422
