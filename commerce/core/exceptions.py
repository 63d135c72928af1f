from fastapi import HTTPException
from commerce.constants.error_codes import ErrorCode


class AppException(HTTPException):
    def __init__(
        self,
        status_code: int,
        message: str,
        error_code: ErrorCode,
        details: dict | None = None,
    ):
        super().__init__(status_code=status_code, detail=message)
        self.error_code = error_code
        self.details = details


class OrderStatusNotFound(AppException):
    def __init__(self, status_id: int):
        super().__init__(
            404,
            f"No order status exists with the ID “{status_id}”",
            ErrorCode.ORDER_STATUS_NOT_FOUND,
            {"id": status_id},
        )
