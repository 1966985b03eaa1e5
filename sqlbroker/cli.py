from __future__ import annotations

import json
import logging
from pathlib import Path

import typer
import yaml
from fastapi.encoders import jsonable_encoder

from sqlbroker.db import init_db, session_scope
from sqlbroker.logging_config import configure_logging
from sqlbroker.models import InstanceCreate, ServerRead
from sqlbroker.plans import list_plans as list_all_plans
from sqlbroker.services import instances as instance_service
from sqlbroker.services.errors import BrokerException, ValidationException
from sqlbroker.services.sqldb import get_manager

configure_logging()
logger = logging.getLogger(__name__)
app = typer.Typer(help="Azure SQL Database broker CLI", pretty_exceptions_show_locals=False)


def _parse_tags(tags: list[str] | None) -> dict[str, str]:
    parsed: dict[str, str] = {}
    for tag in tags or []:
        key, sep, value = tag.partition("=")
        if not sep or not key:
            raise ValueError(f"Invalid tag {tag!r}; expected KEY=VALUE")
        parsed[key] = value
    return parsed


def _parse_parameters_file(path: Path | None) -> dict | None:
    if path is None:
        return None
    try:
        parsed = json.loads(path.read_text())
    except OSError as exc:
        raise ValueError(f"Unable to read --parameters-file: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in --parameters-file: {exc.msg}") from exc
    if not isinstance(parsed, dict):
        raise ValueError("--parameters-file must contain a JSON object")
    return parsed


def _build_parameters(
    *,
    server: str | None,
    firewall_start: str | None,
    firewall_end: str | None,
    parameters_file: Path | None,
) -> dict:
    parameters = _parse_parameters_file(parameters_file) or {}
    if server is not None:
        parameters["server"] = server
    if firewall_start is not None:
        parameters["firewallStartIPAddress"] = firewall_start
    if firewall_end is not None:
        parameters["firewallEndIPAddress"] = firewall_end
    return parameters


def _exit_for_domain_error(exc: BrokerException) -> None:
    logger.warning("CLI command failed with domain error: %s", exc)
    typer.echo(f"Error: {exc}", err=True)
    raise typer.Exit(code=1)


def _exit_for_input_error(exc: ValueError) -> None:
    logger.warning("Invalid CLI input: %s", exc)
    typer.echo(f"Error: {exc}", err=True)
    raise typer.Exit(code=1)


def _echo_yaml_entity(entity: object) -> None:
    encoded = jsonable_encoder(entity)
    typer.echo(yaml.safe_dump(encoded, sort_keys=False), nl=False)


_SERVER_OPTION = typer.Option(None, "--server", help="Registered server to create the database on.")
_FIREWALL_START_OPTION = typer.Option(None, "--firewall-start", help="First IPv4 address of the firewall rule.")
_FIREWALL_END_OPTION = typer.Option(None, "--firewall-end", help="Last IPv4 address of the firewall rule.")
_PARAMETERS_FILE_OPTION = typer.Option(
    None, "--parameters-file", help="Path to a JSON file with the provisioning parameters object."
)


@app.command("list-servers")
def list_servers() -> None:
    try:
        servers = get_manager().servers
    except BrokerException as e:
        _exit_for_domain_error(e)
    _echo_yaml_entity(
        [
            ServerRead(
                server_name=server.server_name,
                resource_group=server.resource_group,
                location=server.location,
                administrator_login=server.administrator_login,
            )
            for server in servers.values()
        ]
    )


@app.command("list-plans")
def list_plans() -> None:
    _echo_yaml_entity([plan.model_dump() for plan in list_all_plans()])


@app.command("validate")
def validate(
    server: str | None = _SERVER_OPTION,
    firewall_start: str | None = _FIREWALL_START_OPTION,
    firewall_end: str | None = _FIREWALL_END_OPTION,
    parameters_file: Path | None = _PARAMETERS_FILE_OPTION,
) -> None:
    try:
        payload = _build_parameters(
            server=server,
            firewall_start=firewall_start,
            firewall_end=firewall_end,
            parameters_file=parameters_file,
        )
    except ValueError as e:
        _exit_for_input_error(e)
    try:
        params = instance_service.parse_provisioning_parameters(payload)
        get_manager().validate_provisioning_parameters(params)
    except ValidationException as e:
        logger.warning("Provisioning parameters rejected: %s", e)
        typer.echo(f"Error: {e.field}: {e.message}", err=True)
        raise typer.Exit(code=1)
    except BrokerException as e:
        _exit_for_domain_error(e)
    _echo_yaml_entity({"valid": True, "parameters": params.model_dump(by_alias=True)})


@app.command("provision")
def provision(
    instance_id: str,
    *,
    plan_id: str = typer.Option(..., "--plan-id", help="Plan to provision (see list-plans)."),
    resource_group: str | None = typer.Option(None, "--resource-group"),
    location: str | None = typer.Option(None, "--location"),
    tag: list[str] | None = typer.Option(None, "--tag", help="Resource tag as KEY=VALUE; repeatable."),
    server: str | None = _SERVER_OPTION,
    firewall_start: str | None = _FIREWALL_START_OPTION,
    firewall_end: str | None = _FIREWALL_END_OPTION,
    parameters_file: Path | None = _PARAMETERS_FILE_OPTION,
) -> None:
    try:
        payload = InstanceCreate(
            plan_id=plan_id,
            parameters=_build_parameters(
                server=server,
                firewall_start=firewall_start,
                firewall_end=firewall_end,
                parameters_file=parameters_file,
            ),
            resource_group=resource_group,
            location=location,
            tags=_parse_tags(tag),
        )
    except ValueError as e:
        _exit_for_input_error(e)

    init_db()
    with session_scope() as session:
        try:
            manager = get_manager()
            instance_service.create_instance(session, instance_id=instance_id, payload=payload, manager=manager)
            instance = instance_service.provision_instance(session, instance_id=instance_id, manager=manager)
        except BrokerException as e:
            _exit_for_domain_error(e)
        _echo_yaml_entity(instance_service.to_read(instance))


@app.command("resume")
def resume(instance_id: str) -> None:
    init_db()
    with session_scope() as session:
        try:
            instance = instance_service.provision_instance(session, instance_id=instance_id, manager=get_manager())
        except BrokerException as e:
            _exit_for_domain_error(e)
        _echo_yaml_entity(instance_service.to_read(instance))


@app.command("get-instance")
def get_instance(instance_id: str) -> None:
    init_db()
    with session_scope() as session:
        try:
            instance = instance_service.get_instance(session, instance_id=instance_id)
        except BrokerException as e:
            _exit_for_domain_error(e)
        _echo_yaml_entity(instance_service.to_read(instance))


@app.command("list-instances")
def list_instances(status: str | None = typer.Option(None, "--status")) -> None:
    init_db()
    with session_scope() as session:
        _echo_yaml_entity(
            [instance_service.to_read(i) for i in instance_service.list_instances(session, status=status)]
        )


if __name__ == "__main__":
    app()
