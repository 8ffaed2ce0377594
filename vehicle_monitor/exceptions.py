# vehicle_monitor/exceptions.py

class APIException(Exception):
    """Base API error, rendered as {"message": ...} with its status code"""
    def __init__(self, message: str, status_code: int = 400):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)

class ValidationError(APIException):
    """Missing or malformed required input"""
    def __init__(self, message: str = "Invalid request"):
        super().__init__(message, 400)

class AuthenticationError(APIException):
    """Missing, malformed, expired or forged credentials, or bad login"""
    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message, 401)

class ConflictError(APIException):
    """Resource already exists"""
    def __init__(self, message: str = "Resource already exists"):
        super().__init__(message, 409)

class InternalError(APIException):
    """Unexpected failure; the real cause is only logged server-side"""
    def __init__(self, message: str = "Internal server error"):
        super().__init__(message, 500)
