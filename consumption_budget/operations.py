"""Create, read and delete a budget through an injected billing client."""

import pulumi

from .client import BillingClient
from .errors import ClientError, NotFoundError, ValidationError
from .ids import parse_budget_id
from .mapper import expand_budget, flatten_budget
from .schema import Failure, parse_config


def _locate(budget_id):
    try:
        return parse_budget_id(budget_id)
    except ValueError as exc:
        raise ValidationError([Failure("id", str(exc))]) from exc


def create_budget(client: BillingClient, document):
    """Create the budget described by ``document``.

    Returns the remote identifier and the state read back from the API. If
    the read-back fails the state comes from the create response instead.
    """
    config = parse_config(document)

    pulumi.log.info(f"preparing arguments for budget {config.name!r} creation")
    properties = expand_budget(config)

    budget = client.create(config.resource_group_name, config.name, properties)
    pulumi.log.debug(f"budget {config.name!r} created with id {budget.id}")

    try:
        state = read_budget(client, budget.id)
    except ClientError as exc:
        pulumi.log.warn(
            f"reading back budget {budget.id} failed, using the create response: {exc}"
        )
        state = flatten_budget(budget)
        state["resource_group_name"] = config.resource_group_name
    return budget.id, state


def read_budget(client: BillingClient, budget_id):
    resource_group, name = _locate(budget_id)

    budget = client.get(resource_group, name)

    state = flatten_budget(budget)
    state["resource_group_name"] = resource_group
    return state


def delete_budget(client: BillingClient, budget_id):
    resource_group, name = _locate(budget_id)

    try:
        client.delete(resource_group, name)
    except NotFoundError:
        pulumi.log.warn(f"budget {name!r} in {resource_group!r} was already deleted")
        return
    pulumi.log.info(f"budget {name!r} in {resource_group!r} deleted")
