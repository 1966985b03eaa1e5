from __future__ import annotations

from sqlbroker.plans import get_plan
from sqlbroker.schemas import NewServerContext, ProvisioningParameters
from sqlbroker.services.arm_parameters import (
    build_arm_template_parameters,
    build_existing_server_arm_template_parameters,
)

CONTEXT = NewServerContext(
    arm_deployment_name="deployment-1",
    server_name="server-1",
    administrator_login="admin1",
    administrator_login_password="Secret-1",
    database_name="db1",
)


def test_firewall_keys_are_omitted_when_not_requested() -> None:
    params = build_arm_template_parameters(get_plan("standard-s0"), CONTEXT, ProvisioningParameters())

    assert params == {
        "serverName": "server-1",
        "administratorLogin": "admin1",
        "administratorLoginPassword": "Secret-1",
        "databaseName": "db1",
        "edition": "Standard",
        "requestedServiceObjectiveName": "S0",
        "maxSizeBytes": "268435456000",
    }


def test_firewall_keys_carry_the_literal_request_values() -> None:
    request = ProvisioningParameters(firewall_start_ip_address="1.2.3.4", firewall_end_ip_address="1.2.3.10")

    params = build_arm_template_parameters(get_plan("basic"), CONTEXT, request)

    assert len(params) == 9
    assert params["firewallStartIpAddress"] == "1.2.3.4"
    assert params["firewallEndIpAddress"] == "1.2.3.10"


def test_each_firewall_key_is_included_independently() -> None:
    request = ProvisioningParameters(firewall_start_ip_address="1.2.3.4")

    params = build_arm_template_parameters(get_plan("basic"), CONTEXT, request)

    assert params["firewallStartIpAddress"] == "1.2.3.4"
    assert "firewallEndIpAddress" not in params


def test_existing_server_parameters_are_reduced() -> None:
    params = build_existing_server_arm_template_parameters(get_plan("premium-p1"), CONTEXT)

    assert params == {
        "serverName": "server-1",
        "databaseName": "db1",
        "edition": "Premium",
        "requestedServiceObjectiveName": "P1",
        "maxSizeBytes": "536870912000",
    }
