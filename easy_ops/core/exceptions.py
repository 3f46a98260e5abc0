# easy_ops/core/exceptions.py


# ================================
# INVENTORY EXCEPTIONS
# ================================
class InventoryException(Exception):
    """Base exception for inventory operations"""
    def __init__(self, message: str, status_code: int = 400):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class NotFoundException(InventoryException):
    """Raised when a resource is not found"""
    def __init__(self, message: str = "Resource not found"):
        super().__init__(message, status_code=404)


class ItemNotFoundException(NotFoundException):
    def __init__(self, item_id):
        self.item_id = item_id
        super().__init__(f"Item {item_id} not found")


class LocationNotFoundException(NotFoundException):
    def __init__(self, location_id=None, message: str = None):
        self.location_id = location_id
        super().__init__(message or f"Location {location_id} not found")


class ValidationException(InventoryException):
    """Raised when validation fails"""
    def __init__(self, message: str = "Validation failed"):
        super().__init__(message, status_code=400)


class InvalidQuantityException(ValidationException):
    """Raised when a quantity is zero or negative where a positive one is required"""
    def __init__(self, message: str = "Quantity must be positive"):
        super().__init__(message)


class InsufficientStockException(InventoryException):
    """Raised when a sale asks for more than is on hand"""
    def __init__(self, message: str = "Insufficient stock"):
        super().__init__(message, status_code=400)


class BusinessRuleException(InventoryException):
    """Raised when a business rule is violated"""
    def __init__(self, message: str = "Business rule violation"):
        super().__init__(message, status_code=422)


class PermissionDeniedException(InventoryException):
    def __init__(self, message: str = "Permission denied"):
        super().__init__(message, status_code=403)


class StorageUnavailableException(InventoryException):
    """Transient storage failure; retryable by the caller, never retried here"""
    def __init__(self, message: str = "Storage unavailable"):
        super().__init__(message, status_code=503)


# ================================
# WEBHOOK EXCEPTIONS
# ================================
class WebhookException(Exception):
    """Base exception for webhook ingestion"""
    def __init__(self, message: str, status_code: int = 400):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class WebhookAuthenticationException(WebhookException):
    def __init__(self, message: str = "Invalid signature"):
        super().__init__(message, status_code=401)


class WebhookConfigurationException(WebhookException):
    def __init__(self, message: str = "Configuration error"):
        super().__init__(message, status_code=500)


class WebhookPayloadException(WebhookException):
    def __init__(self, message: str = "Malformed payload"):
        super().__init__(message, status_code=400)


class ExternalServiceException(WebhookException):
    def __init__(self, message: str = "Upstream service error"):
        super().__init__(message, status_code=502)
