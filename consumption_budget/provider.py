"""Pulumi dynamic provider managing an Azure Consumption budget."""

from collections.abc import Mapping
from typing import Optional

import pulumi
from pulumi.dynamic import (
    CheckFailure,
    CheckResult,
    CreateResult,
    DiffResult,
    ReadResult,
    ResourceProvider,
)

from .client import AzureConsumptionClient, BillingClient
from .errors import ExpansionError, NotFoundError
from .mapper import (
    expand_filters,
    expand_notifications,
    flatten_filters,
    group_tags,
)
from .operations import create_budget, delete_budget, read_budget
from .schema import as_decimal, validate

# Every input forces a new budget; there is no in-place update.
REPLACE_KEYS = (
    "name",
    "resource_group_name",
    "category",
    "amount",
    "time_grain",
    "time_period",
    "filters",
    "notification",
)

# Filled in from the API when left out of the inputs.
COMPUTED_KEYS = ("time_period", "filters", "notification")

UNORDERED_FILTERS = ("meters", "resource_ids")


def _normalize_filters(filters):
    flattened = flatten_filters(expand_filters(filters))
    if not flattened:
        return None
    for key in UNORDERED_FILTERS:
        if key in flattened:
            flattened[key] = frozenset(flattened[key])
    if "tags" in flattened:
        # Sent as one "In" expression per tag name, so only the grouping is kept.
        flattened["tags"] = frozenset(
            (name, frozenset(values))
            for name, values in group_tags(flattened["tags"]).items()
        )
    return flattened


def _normalize_notifications(notifications):
    rules = expand_notifications(notifications) or []
    return frozenset(
        (
            rule.threshold,
            rule.operator,
            frozenset(rule.contact_emails) if rule.contact_emails is not None else None,
            frozenset(rule.contact_groups) if rule.contact_groups is not None else None,
        )
        for rule in rules
    )


def _normalize(key, value):
    if value is None:
        return None
    if key in ("category", "time_grain") and isinstance(value, str):
        return value.lower()
    if key == "amount":
        return as_decimal(value)
    if key == "time_period" and isinstance(value, Mapping):
        return (value.get("start_date"), value.get("end_date"))
    if key == "filters":
        return _normalize_filters(value)
    if key == "notification":
        return _normalize_notifications(value) or None
    return value


def changed_keys(olds, news):
    changed = []
    for key in REPLACE_KEYS:
        if key in COMPUTED_KEYS and news.get(key) is None:
            continue
        try:
            different = _normalize(key, olds.get(key)) != _normalize(key, news.get(key))
        except ExpansionError:
            different = olds.get(key) != news.get(key)
        if different:
            changed.append(key)
    return changed


class ConsumptionBudgetProvider(ResourceProvider):
    def __init__(
        self, subscription_id=None, timeout=None, client: Optional[BillingClient] = None
    ):
        self.subscription_id = subscription_id
        self.timeout = timeout
        self._client = client

    def client(self) -> BillingClient:
        if self._client is None:
            self._client = AzureConsumptionClient(self.subscription_id, timeout=self.timeout)
        return self._client

    def check(self, _olds, news):
        failures = [
            CheckFailure(failure.field, failure.reason) for failure in validate(news)
        ]
        return CheckResult(news, failures)

    def diff(self, _id, olds, news):
        replaces = changed_keys(olds, news)
        return DiffResult(
            changes=bool(replaces),
            replaces=replaces,
            delete_before_replace=True,
        )

    def create(self, props):
        budget_id, state = create_budget(self.client(), props)
        return CreateResult(id_=budget_id, outs=state)

    def read(self, id_, props):
        try:
            state = read_budget(self.client(), id_)
        except NotFoundError:
            pulumi.log.info(f"budget {id_} not found, removing from state")
            return ReadResult(None, {})
        return ReadResult(id_, state)

    def delete(self, id_, _props):
        delete_budget(self.client(), id_)


class ConsumptionBudget(pulumi.dynamic.Resource):
    name: pulumi.Output[str]
    resource_group_name: pulumi.Output[str]
    category: pulumi.Output[str]
    amount: pulumi.Output[float]
    time_grain: pulumi.Output[str]
    time_period: pulumi.Output[dict]
    filters: pulumi.Output[dict]
    notification: pulumi.Output[list]
    current_spend: pulumi.Output[float]

    def __init__(
        self,
        resource_name,
        name,
        resource_group_name,
        amount,
        category="Cost",
        time_grain="Monthly",
        time_period=None,
        filters=None,
        notification=None,
        subscription_id=None,
        timeout=None,
        opts=None,
    ):
        super().__init__(
            ConsumptionBudgetProvider(subscription_id, timeout),
            resource_name,
            {
                "name": name,
                "resource_group_name": resource_group_name,
                "category": category,
                "amount": amount,
                "time_grain": time_grain,
                "time_period": time_period,
                "filters": filters,
                "notification": notification,
                "current_spend": None,
            },
            opts,
        )
