"""Budget objects as exchanged with the billing API.

Optional fields use ``None`` for "not sent"; an empty list is a different
payload and is never substituted for it.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional


@dataclass
class TimePeriod:
    start_date: str
    end_date: Optional[str] = None


@dataclass
class Filters:
    meters: Optional[List[str]] = None
    resource_groups: Optional[List[str]] = None
    resources: Optional[List[str]] = None
    tags: Optional[List[str]] = None


@dataclass
class Notification:
    threshold: int
    operator: str
    contact_emails: Optional[List[str]] = None
    contact_groups: Optional[List[str]] = None


@dataclass
class BudgetProperties:
    category: str
    amount: Decimal
    time_grain: str
    time_period: Optional[TimePeriod] = None
    filters: Optional[Filters] = None
    notifications: Optional[List[Notification]] = None
    current_spend: Optional[Decimal] = None


@dataclass
class Budget:
    id: str
    name: str
    properties: BudgetProperties
