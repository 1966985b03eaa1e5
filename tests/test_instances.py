from __future__ import annotations

import pytest

from sqlbroker.models import InstanceCreate, InstanceORM
from sqlbroker.services import instances
from sqlbroker.services.errors import (
    ConflictException,
    InternalException,
    NotFoundException,
    ValidationException,
)


@pytest.fixture(autouse=True)
def _no_default_placement(monkeypatch):
    monkeypatch.delenv("SQLBROKER_DEFAULT_RESOURCE_GROUP", raising=False)
    monkeypatch.delenv("SQLBROKER_DEFAULT_LOCATION", raising=False)


def _payload(**parameters) -> InstanceCreate:
    return InstanceCreate(
        plan_id="standard-s0",
        parameters=parameters,
        resource_group="request-rg",
        location="eastus",
        tags={"team": "data"},
    )


def test_provision_new_server_instance(db_session, manager, fake_deployer) -> None:
    instances.create_instance(
        db_session,
        instance_id="inst-1",
        payload=_payload(firewallStartIPAddress="1.2.3.4", firewallEndIPAddress="1.2.3.10"),
        manager=manager,
    )
    instance = instances.provision_instance(db_session, instance_id="inst-1", manager=manager)

    assert instance.status == "succeeded"
    assert instance.last_completed_step == "deployARMTemplate"
    assert instance.last_error is None
    assert instance.context_json["kind"] == "new"
    assert instance.context_json["fullyQualifiedDomainName"] == "fake-server.database.windows.net"
    assert len(fake_deployer.calls) == 1
    assert fake_deployer.calls[0]["tags"] == {"team": "data"}

    read = instances.to_read(instance)
    assert read.is_new_server is True
    assert read.fully_qualified_domain_name == "fake-server.database.windows.net"


def test_provision_existing_server_instance_needs_no_placement(db_session, manager, fake_deployer) -> None:
    payload = InstanceCreate(plan_id="basic", parameters={"server": "existing-1"})
    instances.create_instance(db_session, instance_id="inst-1", payload=payload, manager=manager)
    instance = instances.provision_instance(db_session, instance_id="inst-1", manager=manager)

    assert instance.status == "succeeded"
    assert instance.context_json["server"] == "existing-1"
    assert instance.context_json["fullyQualifiedDomainName"] == "existing-1.database.windows.net"
    assert fake_deployer.calls[0]["resource_group"] == "registry-rg"


def test_create_instance_rejects_invalid_parameters_without_persisting(db_session, manager) -> None:
    with pytest.raises(ValidationException) as exc_info:
        instances.create_instance(
            db_session,
            instance_id="inst-1",
            payload=_payload(firewallStartIPAddress="10.0.1.0", firewallEndIPAddress="10.0.0.1"),
            manager=manager,
        )
    assert exc_info.value.field == "firewallEndIPAddress"
    assert instances.list_instances(db_session) == []


def test_create_instance_rejects_unknown_parameter_keys(db_session, manager) -> None:
    with pytest.raises(ValidationException) as exc_info:
        instances.create_instance(db_session, instance_id="inst-1", payload=_payload(sku="S9"), manager=manager)
    assert exc_info.value.field == "sku"


def test_create_instance_requires_placement_for_new_server(db_session, manager) -> None:
    payload = InstanceCreate(plan_id="basic", parameters={})
    with pytest.raises(ValidationException) as exc_info:
        instances.create_instance(db_session, instance_id="inst-1", payload=payload, manager=manager)
    assert exc_info.value.field == "resourceGroup"


def test_create_instance_uses_configured_placement(db_session, manager, monkeypatch) -> None:
    monkeypatch.setenv("SQLBROKER_DEFAULT_RESOURCE_GROUP", "default-rg")
    monkeypatch.setenv("SQLBROKER_DEFAULT_LOCATION", "northeurope")

    instance = instances.create_instance(
        db_session, instance_id="inst-1", payload=InstanceCreate(plan_id="basic"), manager=manager
    )

    assert (instance.resource_group, instance.location) == ("default-rg", "northeurope")


def test_create_instance_unknown_plan(db_session, manager) -> None:
    with pytest.raises(NotFoundException):
        instances.create_instance(
            db_session, instance_id="inst-1", payload=InstanceCreate(plan_id="gold"), manager=manager
        )


def test_create_instance_duplicate_id_conflicts(db_session, manager) -> None:
    instances.create_instance(db_session, instance_id="inst-1", payload=_payload(), manager=manager)
    with pytest.raises(ConflictException):
        instances.create_instance(db_session, instance_id="inst-1", payload=_payload(), manager=manager)


def test_failed_deployment_keeps_resolved_context_and_resumes(db_session, manager, fake_deployer) -> None:
    instances.create_instance(db_session, instance_id="inst-1", payload=_payload(), manager=manager)
    fake_deployer.raise_on_deploy = RuntimeError("deployment quota exceeded")

    with pytest.raises(InternalException):
        instances.provision_instance(db_session, instance_id="inst-1", manager=manager)

    failed = db_session.get(InstanceORM, 1)
    assert failed.status == "failed"
    assert failed.last_completed_step == "preProvision"
    assert "deployment quota exceeded" in failed.last_error
    server_name = failed.context_json["server"]
    deployment_name = failed.context_json["armDeployment"]

    fake_deployer.raise_on_deploy = None
    resumed = instances.provision_instance(db_session, instance_id="inst-1", manager=manager)

    assert resumed.status == "succeeded"
    assert resumed.last_error is None
    # resuming re-runs only the deployment, with the identifiers allocated the first time
    assert resumed.context_json["server"] == server_name
    assert [call["deployment_name"] for call in fake_deployer.calls] == [deployment_name, deployment_name]


def test_provision_succeeded_instance_is_a_noop(db_session, manager, fake_deployer) -> None:
    instances.create_instance(db_session, instance_id="inst-1", payload=_payload(), manager=manager)
    instances.provision_instance(db_session, instance_id="inst-1", manager=manager)
    instances.provision_instance(db_session, instance_id="inst-1", manager=manager)

    assert len(fake_deployer.calls) == 1


def test_get_instance_not_found(db_session) -> None:
    with pytest.raises(NotFoundException):
        instances.get_instance(db_session, instance_id="missing")


def test_list_instances_filters_by_status(db_session, manager) -> None:
    instances.create_instance(db_session, instance_id="inst-1", payload=_payload(), manager=manager)
    instances.create_instance(db_session, instance_id="inst-2", payload=_payload(), manager=manager)
    instances.provision_instance(db_session, instance_id="inst-2", manager=manager)

    assert [i.instance_id for i in instances.list_instances(db_session, status="succeeded")] == ["inst-2"]
    assert [i.instance_id for i in instances.list_instances(db_session)] == ["inst-1", "inst-2"]
