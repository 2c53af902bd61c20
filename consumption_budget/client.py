"""Billing API client used by the budget operations.

The operations only depend on the small :class:`BillingClient` protocol; the
Azure implementation wraps ``azure.mgmt.consumption`` and converts between its
models and :mod:`consumption_budget.wire`.
"""

import datetime
from contextlib import contextmanager
from decimal import Decimal
from typing import Protocol

from azure.core.exceptions import AzureError, HttpResponseError, ResourceNotFoundError
from azure.identity import DefaultAzureCredential
from azure.mgmt.consumption import ConsumptionManagementClient
from azure.mgmt.consumption import models

from .errors import ClientError, NotFoundError
from .mapper import group_tags
from .wire import Budget, BudgetProperties, Filters, Notification, TimePeriod

DIMENSION_FIELDS = {
    "Meter": "meters",
    "ResourceGroupName": "resource_groups",
    "ResourceId": "resources",
}


class BillingClient(Protocol):
    def create(self, resource_group: str, name: str, properties: BudgetProperties) -> Budget:
        ...

    def get(self, resource_group: str, name: str) -> Budget:
        ...

    def delete(self, resource_group: str, name: str) -> None:
        ...


def _value(value):
    # SDK enums are str subclasses; keep the wire spelling.
    return getattr(value, "value", value)


def _parse_date(value):
    return datetime.datetime.combine(
        datetime.date.fromisoformat(value), datetime.time(), tzinfo=datetime.timezone.utc
    )


def notification_key(notification: Notification) -> str:
    return f"actual_{notification.operator}_{notification.threshold}_Percent"


def to_sdk_time_period(time_period):
    if time_period is None:
        # The API requires a start date; budgets begin on the first of a month.
        start = datetime.datetime.now(datetime.timezone.utc).date().replace(day=1)
        return models.BudgetTimePeriod(start_date=_parse_date(start.isoformat()))
    return models.BudgetTimePeriod(
        start_date=_parse_date(time_period.start_date),
        end_date=_parse_date(time_period.end_date) if time_period.end_date else None,
    )


def to_sdk_filter(filters):
    if filters is None:
        return None

    expressions = []
    for dimension, field in DIMENSION_FIELDS.items():
        values = getattr(filters, field)
        if values:
            expressions.append(
                models.BudgetFilterProperties(
                    dimensions=models.BudgetComparisonExpression(
                        name=dimension, operator="In", values=list(values)
                    )
                )
            )
    for name, values in group_tags(filters.tags).items():
        expressions.append(
            models.BudgetFilterProperties(
                tags=models.BudgetComparisonExpression(
                    name=name, operator="In", values=values
                )
            )
        )

    if not expressions:
        return None
    # The API rejects an "and" expression with fewer than two operands.
    if len(expressions) == 1:
        return models.BudgetFilter(
            dimensions=expressions[0].dimensions, tags=expressions[0].tags
        )
    return models.BudgetFilter(and_property=expressions)


def to_sdk_notifications(notifications):
    if notifications is None:
        return None
    return {
        notification_key(notification): models.Notification(
            enabled=True,
            operator=notification.operator,
            threshold=notification.threshold,
            contact_emails=notification.contact_emails,
            contact_groups=notification.contact_groups,
        )
        for notification in notifications
    }


def to_sdk_budget(properties: BudgetProperties) -> models.Budget:
    return models.Budget(
        category=properties.category,
        amount=float(properties.amount),
        time_grain=properties.time_grain,
        time_period=to_sdk_time_period(properties.time_period),
        filter=to_sdk_filter(properties.filters),
        notifications=to_sdk_notifications(properties.notifications),
    )


def from_sdk_filter(budget_filter):
    if budget_filter is None:
        return None

    parts = list(budget_filter.and_property or [])
    if budget_filter.dimensions is not None or budget_filter.tags is not None:
        parts.append(budget_filter)

    filters = Filters()
    for part in parts:
        dimension = part.dimensions
        if dimension is not None and dimension.name in DIMENSION_FIELDS:
            field = DIMENSION_FIELDS[dimension.name]
            setattr(filters, field, (getattr(filters, field) or []) + list(dimension.values))
        if part.tags is not None:
            tags = [f"{part.tags.name}={value}" for value in part.tags.values]
            filters.tags = (filters.tags or []) + tags
    return filters


def from_sdk_notifications(notifications):
    if notifications is None:
        return None
    return [
        Notification(
            threshold=int(notification.threshold),
            operator=_value(notification.operator),
            contact_emails=(
                list(notification.contact_emails)
                if notification.contact_emails is not None
                else None
            ),
            contact_groups=(
                list(notification.contact_groups)
                if notification.contact_groups is not None
                else None
            ),
        )
        for _, notification in sorted(notifications.items())
    ]


def from_sdk_budget(budget: models.Budget) -> Budget:
    time_period = None
    if budget.time_period is not None:
        time_period = TimePeriod(
            start_date=budget.time_period.start_date.date().isoformat(),
            end_date=(
                budget.time_period.end_date.date().isoformat()
                if budget.time_period.end_date is not None
                else None
            ),
        )

    current_spend = None
    if budget.current_spend is not None and budget.current_spend.amount is not None:
        current_spend = Decimal(str(budget.current_spend.amount))

    return Budget(
        id=budget.id,
        name=budget.name,
        properties=BudgetProperties(
            category=_value(budget.category),
            amount=Decimal(str(budget.amount)),
            time_grain=_value(budget.time_grain),
            time_period=time_period,
            filters=from_sdk_filter(budget.filter),
            notifications=from_sdk_notifications(budget.notifications),
            current_spend=current_spend,
        ),
    )


@contextmanager
def translate_errors(resource_group, name):
    try:
        yield
    except ResourceNotFoundError as exc:
        raise NotFoundError(
            f"budget {name!r} in resource group {resource_group!r} was not found: {exc}"
        ) from exc
    except HttpResponseError as exc:
        if exc.status_code == 404:
            raise NotFoundError(
                f"budget {name!r} in resource group {resource_group!r} was not found: {exc}"
            ) from exc
        raise ClientError(str(exc)) from exc
    except AzureError as exc:
        raise ClientError(str(exc)) from exc


class AzureConsumptionClient:
    """Budget client for the Azure Consumption API, scoped to one subscription."""

    def __init__(self, subscription_id, credential=None, timeout=None, client=None):
        self.subscription_id = subscription_id
        if client is None:
            kwargs = {}
            if timeout is not None:
                kwargs["connection_timeout"] = timeout
                kwargs["read_timeout"] = timeout
            client = ConsumptionManagementClient(
                credential or DefaultAzureCredential(), subscription_id, **kwargs
            )
        self._client = client

    def scope(self, resource_group):
        return f"/subscriptions/{self.subscription_id}/resourceGroups/{resource_group}"

    def create(self, resource_group, name, properties):
        with translate_errors(resource_group, name):
            result = self._client.budgets.create_or_update(
                self.scope(resource_group), name, to_sdk_budget(properties)
            )
        return from_sdk_budget(result)

    def get(self, resource_group, name):
        with translate_errors(resource_group, name):
            result = self._client.budgets.get(self.scope(resource_group), name)
        return from_sdk_budget(result)

    def delete(self, resource_group, name):
        with translate_errors(resource_group, name):
            self._client.budgets.delete(self.scope(resource_group), name)
