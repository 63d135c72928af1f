import enum


class ErrorCode(str, enum.Enum):
    # Generic
    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNAUTHORIZED = "UNAUTHORIZED"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    INTERNAL_ERROR = "INTERNAL_ERROR"

    # Order statuses
    ORDER_STATUS_NOT_FOUND = "ORDER_STATUS_NOT_FOUND"
    ORDER_STATUS_IN_USE = "ORDER_STATUS_IN_USE"
    ORDER_STATUS_LAST_REMAINING = "ORDER_STATUS_LAST_REMAINING"
    ORDER_STATUS_DEFAULT_MISSING = "ORDER_STATUS_DEFAULT_MISSING"

    # Orders
    ORDER_NOT_FOUND = "ORDER_NOT_FOUND"
    ORDER_NUMBER_EXISTS = "ORDER_NUMBER_EXISTS"

    # Emails
    EMAIL_NOT_FOUND = "EMAIL_NOT_FOUND"
    EMAIL_TEMPLATE_NOT_FOUND = "EMAIL_TEMPLATE_NOT_FOUND"
