from .errors import (
    BudgetError,
    ClientError,
    ExpansionError,
    NotFoundError,
    ValidationError,
)
from .provider import ConsumptionBudget, ConsumptionBudgetProvider
