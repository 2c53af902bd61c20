import datetime
import unittest
from decimal import Decimal
from unittest import mock

from azure.core.exceptions import (
    HttpResponseError,
    ResourceNotFoundError,
    ServiceRequestError,
)
from azure.mgmt.consumption import models

from consumption_budget.client import (
    AzureConsumptionClient,
    from_sdk_budget,
    to_sdk_budget,
)
from consumption_budget.errors import ClientError, NotFoundError
from consumption_budget.wire import BudgetProperties, Filters, Notification, TimePeriod

from fakes import SUBSCRIPTION_ID

SCOPE = f"/subscriptions/{SUBSCRIPTION_ID}/resourceGroups/budget-rg"
BUDGET_ID = f"{SCOPE}/providers/Microsoft.Consumption/budgets/MonthlyBudget"


def sdk_budget(**kwargs):
    budget = models.Budget(
        category="Cost",
        amount=500.0,
        time_grain="Monthly",
        time_period=models.BudgetTimePeriod(
            start_date=datetime.datetime(2024, 12, 1, tzinfo=datetime.timezone.utc)
        ),
        **kwargs,
    )
    budget.id = BUDGET_ID
    budget.name = "MonthlyBudget"
    return budget


class TestToSdk(unittest.TestCase):
    def test_budget(self):
        properties = BudgetProperties(
            category="Cost",
            amount=Decimal("500.50"),
            time_grain="Monthly",
            time_period=TimePeriod(start_date="2024-12-01", end_date="2025-11-30"),
            notifications=[
                Notification(threshold=80, operator="GreaterThan", contact_emails=["a@x.com"])
            ],
        )

        budget = to_sdk_budget(properties)

        self.assertEqual(budget.amount, 500.5)
        self.assertEqual(budget.time_period.start_date.date(), datetime.date(2024, 12, 1))
        self.assertEqual(budget.time_period.end_date.date(), datetime.date(2025, 11, 30))
        self.assertIsNone(budget.filter)
        self.assertEqual(list(budget.notifications), ["actual_GreaterThan_80_Percent"])
        notification = budget.notifications["actual_GreaterThan_80_Percent"]
        self.assertEqual(notification.contact_emails, ["a@x.com"])
        self.assertIsNone(notification.contact_groups)
        self.assertTrue(notification.enabled)

    def test_default_time_period(self):
        budget = to_sdk_budget(BudgetProperties("Cost", Decimal("1"), "Monthly"))

        self.assertEqual(budget.time_period.start_date.day, 1)
        self.assertIsNone(budget.notifications)

    def test_single_filter(self):
        properties = BudgetProperties(
            "Cost", Decimal("1"), "Monthly", filters=Filters(resource_groups=["rg-a"])
        )

        budget_filter = to_sdk_budget(properties).filter

        self.assertIsNone(budget_filter.and_property)
        self.assertEqual(budget_filter.dimensions.name, "ResourceGroupName")
        self.assertEqual(budget_filter.dimensions.values, ["rg-a"])

    def test_combined_filters(self):
        properties = BudgetProperties(
            "Cost",
            Decimal("1"),
            "Monthly",
            filters=Filters(
                resources=["/subscriptions/a"],
                tags=["env=prod", "env=test", "team=ops"],
            ),
        )

        budget_filter = to_sdk_budget(properties).filter

        self.assertEqual(len(budget_filter.and_property), 3)
        self.assertEqual(budget_filter.and_property[0].dimensions.name, "ResourceId")
        self.assertEqual(budget_filter.and_property[1].tags.name, "env")
        self.assertEqual(budget_filter.and_property[1].tags.values, ["prod", "test"])
        self.assertEqual(budget_filter.and_property[2].tags.values, ["ops"])


    def test_serialized_filters(self):
        properties = BudgetProperties(
            "Cost",
            Decimal("1"),
            "Monthly",
            filters=Filters(resource_groups=["rg-a"], tags=["env=prod"]),
        )

        body = to_sdk_budget(properties).serialize()

        self.assertEqual(
            body["properties"]["filter"],
            {
                "and": [
                    {
                        "dimensions": {
                            "name": "ResourceGroupName",
                            "operator": "In",
                            "values": ["rg-a"],
                        }
                    },
                    {"tags": {"name": "env", "operator": "In", "values": ["prod"]}},
                ]
            },
        )

    def test_serialized_single_filter(self):
        properties = BudgetProperties(
            "Cost", Decimal("1"), "Monthly", filters=Filters(meters=["m-1"])
        )

        body = to_sdk_budget(properties).serialize()

        self.assertEqual(
            body["properties"]["filter"],
            {"dimensions": {"name": "Meter", "operator": "In", "values": ["m-1"]}},
        )

    def test_serialized_notifications_omit_contacts(self):
        properties = BudgetProperties(
            "Cost",
            Decimal("1"),
            "Monthly",
            notifications=[Notification(threshold=90, operator="EqualTo")],
        )

        body = to_sdk_budget(properties).serialize()

        notification = body["properties"]["notifications"]["actual_EqualTo_90_Percent"]
        self.assertEqual(notification["operator"], "EqualTo")
        self.assertNotIn("contactEmails", notification)
        self.assertNotIn("contactGroups", notification)


class TestFromSdk(unittest.TestCase):
    def test_budget(self):
        budget = sdk_budget(
            filter=models.BudgetFilter(
                and_property=[
                    models.BudgetFilterProperties(
                        dimensions=models.BudgetComparisonExpression(
                            name="Meter", operator="In", values=["m-1"]
                        )
                    ),
                    models.BudgetFilterProperties(
                        tags=models.BudgetComparisonExpression(
                            name="env", operator="In", values=["prod"]
                        )
                    ),
                ]
            ),
            notifications={
                "actual_EqualTo_100_Percent": models.Notification(
                    enabled=True, operator="EqualTo", threshold=100.0, contact_emails=None
                ),
                "actual_GreaterThan_80_Percent": models.Notification(
                    enabled=True,
                    operator="GreaterThan",
                    threshold=80.0,
                    contact_emails=["a@x.com"],
                    contact_groups=["/subscriptions/a/actionGroups/ops"],
                ),
            },
        )
        budget.current_spend = models.CurrentSpend()
        budget.current_spend.amount = 12.5

        result = from_sdk_budget(budget)

        self.assertEqual(result.id, BUDGET_ID)
        self.assertEqual(result.properties.amount, Decimal("500.0"))
        self.assertEqual(result.properties.time_period, TimePeriod(start_date="2024-12-01"))
        self.assertEqual(result.properties.filters, Filters(meters=["m-1"], tags=["env=prod"]))
        self.assertEqual(result.properties.current_spend, Decimal("12.5"))
        self.assertEqual(
            result.properties.notifications,
            [
                Notification(threshold=100, operator="EqualTo"),
                Notification(
                    threshold=80,
                    operator="GreaterThan",
                    contact_emails=["a@x.com"],
                    contact_groups=["/subscriptions/a/actionGroups/ops"],
                ),
            ],
        )

    def test_single_dimension_filter(self):
        budget = sdk_budget(
            filter=models.BudgetFilter(
                dimensions=models.BudgetComparisonExpression(
                    name="ResourceGroupName", operator="In", values=["rg-a"]
                )
            )
        )

        result = from_sdk_budget(budget)

        self.assertEqual(result.properties.filters, Filters(resource_groups=["rg-a"]))

    def test_without_optional_blocks(self):
        result = from_sdk_budget(sdk_budget())

        self.assertIsNone(result.properties.filters)
        self.assertIsNone(result.properties.notifications)
        self.assertIsNone(result.properties.current_spend)


class TestAzureConsumptionClient(unittest.TestCase):
    def setUp(self):
        self.sdk = mock.Mock()
        self.client = AzureConsumptionClient(SUBSCRIPTION_ID, client=self.sdk)

    def test_create(self):
        self.sdk.budgets.create_or_update.return_value = sdk_budget()

        budget = self.client.create(
            "budget-rg", "MonthlyBudget", BudgetProperties("Cost", Decimal("500"), "Monthly")
        )

        scope, name, parameters = self.sdk.budgets.create_or_update.call_args.args
        self.assertEqual((scope, name), (SCOPE, "MonthlyBudget"))
        self.assertIsInstance(parameters, models.Budget)
        self.assertEqual(budget.id, BUDGET_ID)

    def test_get_and_delete(self):
        self.sdk.budgets.get.return_value = sdk_budget()

        self.assertEqual(self.client.get("budget-rg", "MonthlyBudget").name, "MonthlyBudget")
        self.client.delete("budget-rg", "MonthlyBudget")

        self.sdk.budgets.get.assert_called_once_with(SCOPE, "MonthlyBudget")
        self.sdk.budgets.delete.assert_called_once_with(SCOPE, "MonthlyBudget")

    def test_not_found(self):
        self.sdk.budgets.get.side_effect = ResourceNotFoundError("Budget not found")

        with self.assertRaises(NotFoundError) as raised:
            self.client.get("budget-rg", "MonthlyBudget")
        self.assertIsInstance(raised.exception.__cause__, ResourceNotFoundError)

    def test_http_404(self):
        error = HttpResponseError("Budget not found")
        error.status_code = 404
        self.sdk.budgets.delete.side_effect = error

        with self.assertRaises(NotFoundError):
            self.client.delete("budget-rg", "MonthlyBudget")

    def test_api_errors_keep_message(self):
        self.sdk.budgets.create_or_update.side_effect = HttpResponseError(
            "(BadRequest) Start date must be the first of the month"
        )

        with self.assertRaises(ClientError) as raised:
            self.client.create("budget-rg", "MonthlyBudget", BudgetProperties("Cost", Decimal("1"), "Monthly"))
        self.assertNotIsInstance(raised.exception, NotFoundError)
        self.assertIn("Start date must be the first of the month", str(raised.exception))

    def test_transport_errors(self):
        self.sdk.budgets.get.side_effect = ServiceRequestError("connection timed out")

        with self.assertRaises(ClientError):
            self.client.get("budget-rg", "MonthlyBudget")


if __name__ == "__main__":
    unittest.main()
