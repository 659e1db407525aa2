class DepositHoldError(RuntimeError):
    """Base error; handlers render it as {"error": message} with status_code."""

    status_code = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code


class PlanyoError(DepositHoldError):
    status_code = 502


class PaymentServiceError(DepositHoldError):
    pass


class EmailError(DepositHoldError):
    pass


class MissingEmailError(DepositHoldError):
    status_code = 400


class InvalidAmountError(DepositHoldError):
    status_code = 400
