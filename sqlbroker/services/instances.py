from __future__ import annotations

from datetime import datetime
import logging
from typing import Any

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from sqlbroker import config
from sqlbroker.models import InstanceCreate, InstanceORM, InstanceRead
from sqlbroker.plans import get_plan
from sqlbroker.schemas import (
    Instance,
    ProvisioningParameters,
    StandardProvisioningContext,
    context_from_json,
    context_to_json,
)
from sqlbroker.services.constants import (
    INSTANCE_STATUS_FAILED,
    INSTANCE_STATUS_PROVISIONING,
    INSTANCE_STATUS_SUCCEEDED,
)
from sqlbroker.services.errors import ConflictException, NotFoundException, ValidationException
from sqlbroker.services.sqldb import SqlDatabaseManager

logger = logging.getLogger(__name__)


def parse_provisioning_parameters(payload: dict[str, Any] | None) -> ProvisioningParameters:
    try:
        return ProvisioningParameters.model_validate(payload or {})
    except ValidationError as exc:
        error = exc.errors()[0]
        field = ".".join(str(part) for part in error.get("loc", ())) or "parameters"
        raise ValidationException(field, error.get("msg", "invalid value")) from exc


def _get_instance_orm(session: Session, *, instance_id: str) -> InstanceORM:
    stmt = select(InstanceORM).where(InstanceORM.instance_id == instance_id)
    if not (instance := session.exec(stmt).one_or_none()):
        raise NotFoundException(f'Instance "{instance_id}" not found')
    return instance


def _to_instance(instance: InstanceORM) -> Instance:
    return Instance(
        instance_id=instance.instance_id,
        plan_id=instance.plan_id,
        provisioning_parameters=ProvisioningParameters.model_validate(instance.parameters_json or {}),
        standard_context=StandardProvisioningContext(
            resource_group=instance.resource_group or "",
            location=instance.location or "",
            tags=instance.tags_json or {},
        ),
        provisioning_context=context_from_json(instance.context_json),
    )


def to_read(instance: InstanceORM) -> InstanceRead:
    context = context_from_json(instance.context_json)
    return InstanceRead(
        id=instance.id,
        instance_id=instance.instance_id,
        plan_id=instance.plan_id,
        resource_group=instance.resource_group,
        location=instance.location,
        tags=instance.tags_json or {},
        status=instance.status,
        last_completed_step=instance.last_completed_step,
        last_error=instance.last_error,
        is_new_server=context.is_new_server if context else None,
        server_name=context.server_name if context else None,
        database_name=context.database_name if context else None,
        fully_qualified_domain_name=context.fully_qualified_domain_name if context else None,
        created_at=instance.created_at,
        updated_at=instance.updated_at,
    )


def create_instance(
    session: Session,
    *,
    instance_id: str,
    payload: InstanceCreate,
    manager: SqlDatabaseManager,
) -> InstanceORM:
    """Validate a provisioning request and record it; nothing is deployed yet."""
    get_plan(payload.plan_id)
    params = parse_provisioning_parameters(payload.parameters)
    manager.validate_provisioning_parameters(params)

    resource_group = payload.resource_group or config.default_resource_group()
    location = payload.location or config.default_location()
    # a registered server brings its own resource group and location
    if not params.server_name:
        if not resource_group:
            raise ValidationException("resourceGroup", "must be set when no serverName is given")
        if not location:
            raise ValidationException("location", "must be set when no serverName is given")

    instance = InstanceORM(
        instance_id=instance_id,
        plan_id=payload.plan_id,
        resource_group=resource_group,
        location=location,
        parameters_json=params.model_dump(by_alias=True, exclude_defaults=True),
        tags_json=dict(payload.tags or {}),
        status=INSTANCE_STATUS_PROVISIONING,
    )
    session.add(instance)
    try:
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        logger.warning("Instance create failed due to integrity conflict for instance_id=%s", instance_id)
        raise ConflictException(f'Instance "{instance_id}" already exists') from exc
    session.refresh(instance)
    logger.info("Created instance instance_id=%s plan_id=%s", instance_id, payload.plan_id)
    return instance


def get_instance(session: Session, *, instance_id: str) -> InstanceORM:
    return _get_instance_orm(session, instance_id=instance_id)


def list_instances(session: Session, *, status: str | None = None) -> list[InstanceORM]:
    stmt = select(InstanceORM)
    if status is not None:
        stmt = stmt.where(InstanceORM.status == status)
    return list(session.exec(stmt.order_by(InstanceORM.id)).all())


def _save(session: Session, instance: InstanceORM) -> None:
    instance.updated_at = datetime.utcnow()
    session.add(instance)
    session.commit()
    session.refresh(instance)


def provision_instance(
    session: Session,
    *,
    instance_id: str,
    manager: SqlDatabaseManager,
) -> InstanceORM:
    """Run the remaining provisioning steps of an instance, persisting the context after each one.

    Execution resumes after ``last_completed_step`` with the context that step persisted. A failing
    step marks the instance failed and re-raises; the last persisted context is left in place.
    """
    instance = _get_instance_orm(session, instance_id=instance_id)
    if instance.status == INSTANCE_STATUS_SUCCEEDED:
        logger.info("Instance %s is already provisioned", instance_id)
        return instance

    plan = get_plan(instance.plan_id)
    provisioner = manager.get_provisioner(plan)
    current = _to_instance(instance)
    context = current.provisioning_context

    instance.status = INSTANCE_STATUS_PROVISIONING
    instance.last_error = None
    _save(session, instance)

    step = provisioner.next_step(instance.last_completed_step)
    while step is not None:
        logger.info("Running step %s for instance %s", step.name, instance_id)
        try:
            context = step.execute(context, current, plan)
        except Exception as exc:
            logger.exception("Step %s failed for instance %s", step.name, instance_id)
            instance.status = INSTANCE_STATUS_FAILED
            instance.last_error = str(exc)
            _save(session, instance)
            raise
        instance.context_json = context_to_json(context)
        instance.last_completed_step = step.name
        _save(session, instance)
        current = current.model_copy(update={"provisioning_context": context})
        step = provisioner.next_step(step.name)

    instance.status = INSTANCE_STATUS_SUCCEEDED
    _save(session, instance)
    logger.info("Provisioned instance %s", instance_id)
    return instance
