"""Azure resource ID parsing."""

from collections import namedtuple

ResourceId = namedtuple(
    "ResourceId", ["subscription_id", "resource_group", "provider", "path"]
)


def parse_resource_id(value: str) -> ResourceId:
    if not isinstance(value, str) or not value.startswith("/"):
        raise ValueError(f"resource ID must be an absolute path, got {value!r}")

    components = value.strip("/").split("/")
    if len(components) % 2 != 0:
        raise ValueError(
            f"the number of path segments in {value!r} is not divisible by 2"
        )

    path = {}
    for key, component in zip(components[0::2], components[1::2]):
        if not key or not component:
            raise ValueError(f"key/value segment cannot be empty in {value!r}")
        path[key] = component

    subscription_id = path.pop("subscriptions", None)
    if subscription_id is None:
        raise ValueError(f"no subscription ID found in {value!r}")

    # Budgets and other resources are addressed by "resourceGroups"; some APIs
    # hand back the lower-cased spelling.
    resource_group = path.pop("resourceGroups", None) or path.pop(
        "resourcegroups", None
    )
    provider = path.pop("providers", None)

    return ResourceId(subscription_id, resource_group, provider, path)


def is_resource_id(value) -> bool:
    try:
        parse_resource_id(value)
    except ValueError:
        return False
    return True


def parse_budget_id(value: str):
    """Return the ``(resource_group, name)`` pair addressed by a budget ID."""
    resource_id = parse_resource_id(value)
    name = resource_id.path.get("budgets")
    if resource_id.resource_group is None or name is None:
        raise ValueError(f"{value!r} is not a resource group scoped budget ID")
    return resource_id.resource_group, name
