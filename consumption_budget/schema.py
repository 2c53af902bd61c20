"""Budget configuration types and the checks applied to them before any API call."""

import datetime
import re
import uuid
from collections import namedtuple
from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import List, Optional, TypedDict

from .errors import ValidationError
from .ids import is_resource_id

MAX_NOTIFICATIONS = 5
MIN_THRESHOLD = 0
MAX_THRESHOLD = 1000
MAX_RESOURCE_GROUP_NAME = 90

RESOURCE_GROUP_NAME = re.compile(r"[-\w._()]+")
RESOURCE_GROUP_NAME_RULES = (
    "expected a resource group name of up to 90 letters, digits, underscores,"
    " hyphens, periods or parentheses, not ending in a period"
)

Failure = namedtuple("Failure", ["field", "reason"])


class CategoryType(str, Enum):
    COST = "Cost"
    USAGE = "Usage"


class TimeGrainType(str, Enum):
    ANNUALLY = "Annually"
    MONTHLY = "Monthly"
    QUARTERLY = "Quarterly"


class OperatorType(str, Enum):
    EQUAL_TO = "EqualTo"
    GREATER_THAN = "GreaterThan"
    GREATER_THAN_OR_EQUAL_TO = "GreaterThanOrEqualTo"


class TimePeriod(TypedDict, total=False):
    start_date: str
    end_date: str


class FilterSet(TypedDict, total=False):
    meters: List[str]
    resource_group_names: List[str]
    resource_ids: List[str]
    tags: List[str]


class NotificationRule(TypedDict, total=False):
    threshold: int
    operator: str
    contact_emails: List[str]
    action_groups: List[str]


@dataclass
class BudgetConfig:
    name: str
    resource_group_name: str
    category: CategoryType
    amount: Decimal
    time_grain: TimeGrainType
    time_period: Optional[TimePeriod] = None
    filters: Optional[FilterSet] = None
    notification: Optional[List[NotificationRule]] = None


def match_enum(enum_type, value):
    """Return the member of ``enum_type`` spelled like ``value``, ignoring case."""
    if isinstance(value, str):
        for member in enum_type:
            if member.value.lower() == value.lower():
                return member
    return None


def _allowed(enum_type):
    return ", ".join(member.value for member in enum_type)


def as_decimal(value) -> Optional[Decimal]:
    if isinstance(value, bool) or not isinstance(value, (int, float, str, Decimal)):
        return None
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        return None
    if not amount.is_finite():
        return None
    return amount


def as_threshold(value) -> Optional[int]:
    # Pulumi hands numbers over as floats, so 80.0 is an acceptable 80.
    if isinstance(value, bool):
        return None
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, int):
        return value
    return None


def _is_date(value) -> bool:
    if not isinstance(value, str):
        return False
    try:
        datetime.date.fromisoformat(value)
    except ValueError:
        return False
    return True


def _is_uuid(value) -> bool:
    try:
        uuid.UUID(value)
    except ValueError:
        return False
    return True


def _is_resource_group_name(value) -> bool:
    return (
        len(value) <= MAX_RESOURCE_GROUP_NAME
        and not value.endswith(".")
        and RESOURCE_GROUP_NAME.fullmatch(value) is not None
    )


def _is_tag(value) -> bool:
    name, sep, _ = value.partition("=")
    return bool(sep) and bool(name.strip())


def _validate_required_string(document, key, failures):
    value = document.get(key)
    if not isinstance(value, str) or not value:
        failures.append(Failure(key, "is required and must be a non-empty string"))


def _validate_enum(document, key, enum_type, failures):
    value = document.get(key)
    if match_enum(enum_type, value) is None:
        failures.append(
            Failure(key, f"expected one of [{_allowed(enum_type)}], got {value!r}")
        )


def _validate_time_period(time_period, failures):
    if not isinstance(time_period, Mapping):
        failures.append(Failure("time_period", "must be a mapping"))
        return

    start_date = time_period.get("start_date")
    end_date = time_period.get("end_date")
    if not _is_date(start_date):
        failures.append(
            Failure("time_period.start_date", f"expected a YYYY-MM-DD date, got {start_date!r}")
        )
    if end_date is not None:
        if not _is_date(end_date):
            failures.append(
                Failure("time_period.end_date", f"expected a YYYY-MM-DD date, got {end_date!r}")
            )
        elif _is_date(start_date) and datetime.date.fromisoformat(
            end_date
        ) < datetime.date.fromisoformat(start_date):
            failures.append(
                Failure("time_period.end_date", "must not be earlier than start_date")
            )


def _validate_filters(filters, failures):
    # Shape problems (non-mapping block, non-string elements) are left to the
    # expander, which reports them as ExpansionError.
    if not isinstance(filters, Mapping):
        return

    checks = (
        ("meters", _is_uuid, "expected a meter GUID"),
        ("resource_ids", is_resource_id, "expected an Azure resource ID"),
        (
            "resource_group_names",
            _is_resource_group_name,
            RESOURCE_GROUP_NAME_RULES,
        ),
        (
            "tags",
            _is_tag,
            "expected a tag in name=value form, matched against the tag name"
            " and its values",
        ),
    )
    for key, check, reason in checks:
        values = filters.get(key)
        if not isinstance(values, (list, tuple, set, frozenset)):
            continue
        for index, value in enumerate(values):
            if isinstance(value, str) and not check(value):
                failures.append(Failure(f"filters.{key}.{index}", f"{reason}, got {value!r}"))


def _validate_notifications(notifications, failures):
    if not isinstance(notifications, (list, tuple)):
        return

    if len(notifications) > MAX_NOTIFICATIONS:
        failures.append(
            Failure(
                "notification",
                f"at most {MAX_NOTIFICATIONS} notifications are allowed, got {len(notifications)}",
            )
        )

    seen = set()
    for index, rule in enumerate(notifications):
        if not isinstance(rule, Mapping):
            continue
        prefix = f"notification.{index}"

        threshold = as_threshold(rule.get("threshold"))
        if threshold is None:
            failures.append(
                Failure(f"{prefix}.threshold", f"is required and must be an integer, got {rule.get('threshold')!r}")
            )
        elif not MIN_THRESHOLD <= threshold <= MAX_THRESHOLD:
            failures.append(
                Failure(
                    f"{prefix}.threshold",
                    f"expected to be in the range ({MIN_THRESHOLD} - {MAX_THRESHOLD}), got {threshold}",
                )
            )

        operator = match_enum(OperatorType, rule.get("operator"))
        if operator is None:
            failures.append(
                Failure(
                    f"{prefix}.operator",
                    f"expected one of [{_allowed(OperatorType)}], got {rule.get('operator')!r}",
                )
            )

        if threshold is not None and operator is not None:
            if (operator, threshold) in seen:
                failures.append(
                    Failure(prefix, f"duplicate notification for {operator.value} {threshold}")
                )
            seen.add((operator, threshold))


def validate(document) -> List[Failure]:
    """Check a raw budget document and return every problem found.

    An empty list means the document can be parsed with :func:`parse_config`.
    """
    if not isinstance(document, Mapping):
        return [Failure("", "budget configuration must be a mapping")]

    failures = []
    _validate_required_string(document, "name", failures)
    _validate_required_string(document, "resource_group_name", failures)
    resource_group_name = document.get("resource_group_name")
    if (
        isinstance(resource_group_name, str)
        and resource_group_name
        and not _is_resource_group_name(resource_group_name)
    ):
        failures.append(
            Failure("resource_group_name", f"{RESOURCE_GROUP_NAME_RULES}, got {resource_group_name!r}")
        )
    _validate_enum(document, "category", CategoryType, failures)
    _validate_enum(document, "time_grain", TimeGrainType, failures)

    amount = document.get("amount")
    if amount is None:
        failures.append(Failure("amount", "is required"))
    elif as_decimal(amount) is None:
        failures.append(Failure("amount", f"expected a decimal number, got {amount!r}"))

    if document.get("time_period") is not None:
        _validate_time_period(document["time_period"], failures)
    if document.get("filters") is not None:
        _validate_filters(document["filters"], failures)
    if document.get("notification") is not None:
        _validate_notifications(document["notification"], failures)

    return failures


def parse_config(document) -> BudgetConfig:
    failures = validate(document)
    if failures:
        raise ValidationError(failures)

    return BudgetConfig(
        name=document["name"],
        resource_group_name=document["resource_group_name"],
        category=match_enum(CategoryType, document["category"]),
        amount=as_decimal(document["amount"]),
        time_grain=match_enum(TimeGrainType, document["time_grain"]),
        time_period=document.get("time_period"),
        filters=document.get("filters"),
        notification=document.get("notification"),
    )
