from __future__ import annotations

from typing import Any

from sqlbroker.plans import Plan
from sqlbroker.schemas import ProvisioningContext, ProvisioningParameters

PLAN_EXTENDED_KEYS = ("edition", "requestedServiceObjectiveName", "maxSizeBytes")


def _plan_properties(plan: Plan) -> dict[str, Any]:
    return {key: plan.extended_property(key) for key in PLAN_EXTENDED_KEYS}


def build_arm_template_parameters(
    plan: Plan,
    context: ProvisioningContext,
    params: ProvisioningParameters,
) -> dict[str, Any]:
    """ARM parameters for the new-server template."""
    arm_params: dict[str, Any] = {
        "serverName": context.server_name,
        "administratorLogin": context.administrator_login,
        "administratorLoginPassword": context.administrator_login_password,
        "databaseName": context.database_name,
        **_plan_properties(plan),
    }
    # ARM rejects empty strings for IP address parameters, so omit the rule bounds instead
    if params.firewall_start_ip_address:
        arm_params["firewallStartIpAddress"] = params.firewall_start_ip_address
    if params.firewall_end_ip_address:
        arm_params["firewallEndIpAddress"] = params.firewall_end_ip_address
    return arm_params


def build_existing_server_arm_template_parameters(
    plan: Plan,
    context: ProvisioningContext,
) -> dict[str, Any]:
    """ARM parameters for adding a database to a registered server."""
    return {
        "serverName": context.server_name,
        "databaseName": context.database_name,
        **_plan_properties(plan),
    }
