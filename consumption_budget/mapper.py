"""Translation between budget configuration and the billing API objects."""

from collections.abc import Mapping

from .errors import ExpansionError
from .schema import OperatorType, as_threshold, match_enum
from .wire import BudgetProperties, Filters, Notification, TimePeriod

FILTER_KEYS = ("meters", "resource_group_names", "resource_ids", "tags")
NOTIFICATION_KEYS = ("threshold", "operator", "contact_emails", "action_groups")


def _strings(block, key, unique=False):
    values = block.get(key)
    if values is None:
        return None
    if isinstance(values, (str, bytes)) or not isinstance(
        values, (list, tuple, set, frozenset)
    ):
        raise ExpansionError(f"{key} must be a list of strings, got {values!r}")

    result = []
    for value in values:
        if not isinstance(value, str):
            raise ExpansionError(f"{key} must only contain strings, got {value!r}")
        result.append(value)
    if unique:
        result = list(dict.fromkeys(result))
    return result or None


def _check_keys(block, allowed, label):
    unknown = sorted(set(block) - set(allowed))
    if unknown:
        raise ExpansionError(f"unexpected {label} attribute(s): {', '.join(unknown)}")


def group_tags(tags):
    """Group ``name=value`` tags by name, in order of first appearance."""
    grouped = {}
    for tag in tags or []:
        name, _, value = tag.partition("=")
        grouped.setdefault(name, []).append(value)
    return grouped


def expand_time_period(time_period):
    if time_period is None:
        return None
    return TimePeriod(
        start_date=time_period["start_date"],
        end_date=time_period.get("end_date"),
    )


def expand_filters(filters):
    if filters is None:
        return None
    if not isinstance(filters, Mapping):
        raise ExpansionError(f"filters must be a mapping, got {filters!r}")
    _check_keys(filters, FILTER_KEYS, "filters")

    return Filters(
        meters=_strings(filters, "meters", unique=True),
        resource_groups=_strings(filters, "resource_group_names"),
        resources=_strings(filters, "resource_ids", unique=True),
        tags=_strings(filters, "tags"),
    )


def expand_notifications(notifications):
    if notifications is None:
        return None
    if not isinstance(notifications, (list, tuple)):
        raise ExpansionError(f"notification must be a list, got {notifications!r}")

    result = []
    for rule in notifications:
        if not isinstance(rule, Mapping):
            raise ExpansionError(f"notification entries must be mappings, got {rule!r}")
        _check_keys(rule, NOTIFICATION_KEYS, "notification")

        threshold = as_threshold(rule.get("threshold"))
        operator = match_enum(OperatorType, rule.get("operator"))
        if threshold is None or operator is None:
            raise ExpansionError(f"notification requires threshold and operator, got {rule!r}")

        result.append(
            Notification(
                threshold=threshold,
                operator=operator.value,
                contact_emails=_strings(rule, "contact_emails", unique=True),
                contact_groups=_strings(rule, "action_groups", unique=True),
            )
        )
    return result


def expand_budget(config) -> BudgetProperties:
    return BudgetProperties(
        category=config.category.value,
        amount=config.amount,
        time_grain=config.time_grain.value,
        time_period=expand_time_period(config.time_period),
        filters=expand_filters(config.filters),
        notifications=expand_notifications(config.notification),
    )


def flatten_time_period(time_period):
    if time_period is None:
        return None
    result = {"start_date": time_period.start_date}
    if time_period.end_date is not None:
        result["end_date"] = time_period.end_date
    return result


def flatten_filters(filters):
    if filters is None:
        return None

    result = {}
    for key, value in (
        ("meters", filters.meters),
        ("resource_group_names", filters.resource_groups),
        ("resource_ids", filters.resources),
        ("tags", filters.tags),
    ):
        if value is not None:
            result[key] = list(value)
    return result


def flatten_notifications(notifications):
    if notifications is None:
        return []

    result = []
    for notification in notifications:
        rule = {
            "threshold": int(notification.threshold),
            "operator": notification.operator,
        }
        if notification.contact_emails is not None:
            rule["contact_emails"] = list(dict.fromkeys(notification.contact_emails))
        if notification.contact_groups is not None:
            rule["action_groups"] = list(dict.fromkeys(notification.contact_groups))
        result.append(rule)
    return result


def flatten_budget(budget) -> dict:
    """Flatten a remote budget into the shape of its configuration."""
    properties = budget.properties
    state = {
        "name": budget.name,
        "category": properties.category,
        "amount": float(properties.amount),
        "time_grain": properties.time_grain,
        "notification": flatten_notifications(properties.notifications),
        "current_spend": (
            float(properties.current_spend)
            if properties.current_spend is not None
            else None
        ),
    }

    time_period = flatten_time_period(properties.time_period)
    if time_period is not None:
        state["time_period"] = time_period

    filters = flatten_filters(properties.filters)
    if filters is not None:
        state["filters"] = filters

    return state
