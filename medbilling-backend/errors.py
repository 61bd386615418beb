# errors.py
"""
Outcomes the billing store reports back to its callers.

Not-found lookups are signalled by ``None`` from the store; the HTTP layer
turns them into ``NotFoundError``. Everything here is expected and
recoverable, and carries the HTTP status it maps to.
"""


class StoreError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(StoreError):
    status_code = 404


class ValidationFailure(StoreError):
    status_code = 400


class MedicineNotFound(ValidationFailure):
    def __init__(self, medicine_id: str):
        super().__init__(f"Medicine with ID {medicine_id} not found")
        self.medicine_id = medicine_id


class InsufficientStock(ValidationFailure):
    def __init__(self, medicine_name: str, available: int):
        super().__init__(f"Insufficient stock for {medicine_name}. Available: {available}")
        self.medicine_name = medicine_name
        self.available = available


class ConflictError(StoreError):
    # the signup route has always answered duplicates with a 400
    status_code = 400
