from typing import Any, Optional, Dict


class BaseError(Exception):
    """Base exception class for the application"""
    
    def __init__(
        self, 
        message: str = "An error occurred",
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class NotFoundError(BaseError):
    """Exception raised when an entity is not found"""
    
    def __init__(self, entity: str, id: Any):
        super().__init__(
            message=f"{entity} with id {id} not found",
            status_code=404,
            details={"entity": entity, "id": id}
        )


class ValidationError(BaseError):
    """Exception raised for malformed requests"""
    
    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(
            message=message,
            status_code=400,
            details=details
        )


class CapacityExceededError(BaseError):
    """Admission would push a tour date past its group size"""

    def __init__(self, capacity: int, already_booked: Optional[int], requested: int):
        can_accept = None if already_booked is None else max(0, capacity - already_booked)
        super().__init__(
            message="Not enough capacity left for the selected date",
            status_code=400,
            details={
                "capacity": capacity,
                "alreadyBooked": already_booked,
                "canAccept": can_accept,
                "requested": requested,
            }
        )
        self.capacity = capacity
        self.already_booked = already_booked
        self.can_accept = can_accept
        self.requested = requested


class AuthenticationError(BaseError):
    """Exception raised for authentication errors"""
    
    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message=message, status_code=401)


class AuthorizationError(BaseError):
    """Exception raised for authorization errors"""
    
    def __init__(self, message: str = "Access denied"):
        super().__init__(message=message, status_code=403)


class ConflictError(BaseError):
    """Exception raised for conflict errors"""
    
    def __init__(self, message: str):
        super().__init__(message=message, status_code=409)


class BusinessLogicError(BaseError):
    """Exception raised for business logic violations"""
    
    def __init__(self, message: str, rule: Optional[str] = None):
        details = {"rule": rule} if rule else {}
        super().__init__(
            message=message,
            status_code=422,
            details=details
        )


class TransientStoreError(BaseError):
    """Persistence failed for infrastructure reasons; safe to retry"""

    def __init__(self, message: str = "Booking store temporarily unavailable"):
        super().__init__(message=message, status_code=503, details={"retryable": True})


class ExternalServiceError(BaseError):
    """Exception raised when external service fails"""
    
    def __init__(self, service: str, message: str):
        super().__init__(
            message=f"External service error: {message}",
            status_code=503,
            details={"service": service}
        )
