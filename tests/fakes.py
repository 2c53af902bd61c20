import copy

from consumption_budget.errors import ClientError, NotFoundError
from consumption_budget.wire import Budget

SUBSCRIPTION_ID = "00000000-0000-0000-0000-000000000000"


def build_budget_id(subscription_id, resource_group, name):
    return (
        f"/subscriptions/{subscription_id}"
        f"/resourceGroups/{resource_group}"
        f"/providers/Microsoft.Consumption/budgets/{name}"
    )


class FakeBillingClient:
    def __init__(self, create_error=None, get_errors=()):
        self.budgets = {}
        self.calls = []
        self.create_error = create_error
        self.get_errors = list(get_errors)

    def create(self, resource_group, name, properties):
        self.calls.append(("create", resource_group, name))
        if self.create_error is not None:
            raise self.create_error
        budget = Budget(
            id=build_budget_id(SUBSCRIPTION_ID, resource_group, name),
            name=name,
            properties=copy.deepcopy(properties),
        )
        self.budgets[(resource_group, name)] = budget
        return budget

    def get(self, resource_group, name):
        self.calls.append(("get", resource_group, name))
        if self.get_errors:
            raise self.get_errors.pop(0)
        try:
            return copy.deepcopy(self.budgets[(resource_group, name)])
        except KeyError:
            raise NotFoundError(f"budget {name!r} was not found") from None

    def delete(self, resource_group, name):
        self.calls.append(("delete", resource_group, name))
        if (resource_group, name) not in self.budgets:
            raise NotFoundError(f"budget {name!r} was not found")
        del self.budgets[(resource_group, name)]


def failing_client(message="The subscription is disabled"):
    return FakeBillingClient(create_error=ClientError(message))


def budget_document(**overrides):
    document = {
        "name": "MonthlyBudget",
        "resource_group_name": "budget-rg",
        "category": "Cost",
        "amount": 500.0,
        "time_grain": "Monthly",
    }
    document.update(overrides)
    return document
