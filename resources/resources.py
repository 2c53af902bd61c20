import pulumi
import pulumi_azure_native as azure_native

from consumption_budget import ConsumptionBudget

config = pulumi.Config()
azure_native_config = pulumi.Config("azure-native")
azure_native_location = azure_native_config.get("location")
subscription_id = azure_native_config.require("subscriptionId")

resource_group_name = config.get("resourceGroupName")
if resource_group_name is None:
    resource_group_name = "budget-rg"

budget_name = config.get("budgetName")
if budget_name is None:
    budget_name = "MonthlyBudget"

budget_amount = config.get_float("budgetAmount")
if budget_amount is None:
    budget_amount = 30

budget_category = config.get("budgetCategory")
if budget_category is None:
    budget_category = "Cost"

time_grain = config.get("timeGrain")
if time_grain is None:
    time_grain = "Monthly"

budget_start_date = config.get("budgetStartDate")

contact_emails = config.get_object("contactEmails")
if contact_emails is None:
    contact_emails = []

notification_thresholds = config.get_object("notificationThresholds")
if notification_thresholds is None:
    notification_thresholds = [50, 100]

filter_resource_groups = config.get_object("filterResourceGroups")

client_timeout = config.get_int("clientTimeout")
if client_timeout is None:
    client_timeout = 60

resource_group = azure_native.resources.ResourceGroup(
    "resourceGroup",
    resource_group_name=resource_group_name,
    location=azure_native_location,
)

notification = []
for threshold in notification_thresholds:
    rule = {
        "threshold": threshold,
        "operator": "GreaterThan",
    }
    if contact_emails:
        rule["contact_emails"] = contact_emails
    notification.append(rule)

filters = None
if filter_resource_groups:
    filters = {"resource_group_names": filter_resource_groups}

time_period = None
if budget_start_date is not None:
    time_period = {"start_date": budget_start_date}

# Create the budget in the resource group
budget = ConsumptionBudget(
    "budget",
    name=budget_name,
    resource_group_name=resource_group.name,
    amount=budget_amount,
    category=budget_category,
    time_grain=time_grain,
    time_period=time_period,
    filters=filters,
    notification=notification,
    subscription_id=subscription_id,
    timeout=client_timeout,
)
