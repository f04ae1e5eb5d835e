"""
Custom exceptions for the rewards backend.
Provides specific exception types for better error handling and recovery.
"""


class RewardsException(Exception):
    """Base exception for rewards application"""
    pass


class InsufficientPointsException(RewardsException):
    """Raised when a user cannot afford a spend"""
    def __init__(self, user_id: int, required: int, available: int):
        self.user_id = user_id
        self.required = required
        self.available = available
        super().__init__(
            f"Insufficient points for user {user_id}: required {required}, available {available}"
        )


class StorageUnavailableException(RewardsException):
    """Raised when an atomic unit of work cannot be completed"""
    def __init__(self, operation: str, details: str):
        self.operation = operation
        self.details = details
        super().__init__(f"Database {operation} failed: {details}")


class RewardItemNotFoundException(RewardsException):
    """Raised when a reward item is not found"""
    def __init__(self, item_id: int):
        self.item_id = item_id
        super().__init__(f"Reward item with ID {item_id} not found")


class PurchaseNotFoundException(RewardsException):
    """Raised when a purchase is not found for the user"""
    def __init__(self, purchase_id: int):
        self.purchase_id = purchase_id
        super().__init__(f"Purchase with ID {purchase_id} not found")


class PurchaseNotAllowedException(RewardsException):
    """Raised when a shop purchase is not currently allowed"""
    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Purchase not allowed: {reason}")


class ValidationException(RewardsException):
    """Raised when data validation fails"""
    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"Validation error for {field}: {message}")
