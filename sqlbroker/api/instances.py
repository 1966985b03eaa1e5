from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from sqlbroker.db import get_session
from sqlbroker.models import InstanceCreate, InstanceRead
from sqlbroker.services import instances as instance_service
from sqlbroker.services.sqldb import SqlDatabaseManager, get_manager

router = APIRouter(prefix="/instances", tags=["instances"])


@router.put("/{instance_id}", response_model=InstanceRead, status_code=status.HTTP_201_CREATED)
def provision_instance(
    instance_id: str,
    payload: InstanceCreate,
    session: Session = Depends(get_session),
    manager: SqlDatabaseManager = Depends(get_manager),
) -> InstanceRead:
    instance_service.create_instance(session, instance_id=instance_id, payload=payload, manager=manager)
    instance = instance_service.provision_instance(session, instance_id=instance_id, manager=manager)
    return instance_service.to_read(instance)


@router.post("/{instance_id}/resume", response_model=InstanceRead)
def resume_instance(
    instance_id: str,
    session: Session = Depends(get_session),
    manager: SqlDatabaseManager = Depends(get_manager),
) -> InstanceRead:
    instance = instance_service.provision_instance(session, instance_id=instance_id, manager=manager)
    return instance_service.to_read(instance)


@router.get("", response_model=list[InstanceRead])
def list_instances(
    status: Optional[str] = None,
    session: Session = Depends(get_session),
) -> list[InstanceRead]:
    return [instance_service.to_read(i) for i in instance_service.list_instances(session, status=status)]


@router.get("/{instance_id}", response_model=InstanceRead)
def get_instance(instance_id: str, session: Session = Depends(get_session)) -> InstanceRead:
    return instance_service.to_read(instance_service.get_instance(session, instance_id=instance_id))
