"""Errors raised while mapping and managing consumption budgets."""


class BudgetError(Exception):
    pass


class ValidationError(BudgetError):
    """Configuration rejected before any call to the billing API."""

    def __init__(self, failures):
        self.failures = list(failures)
        super().__init__(
            "; ".join(f"{failure.field}: {failure.reason}" for failure in self.failures)
        )


class ExpansionError(BudgetError):
    pass


class ClientError(BudgetError):
    pass


class NotFoundError(ClientError):
    pass
