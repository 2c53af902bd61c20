"""Azure Consumption budget for a resource group"""

import pulumi

from resources.resources import budget, resource_group

pulumi.export("budgetId", budget.id)
pulumi.export("budgetName", budget.name)
pulumi.export("resourceGroup", resource_group.name)
