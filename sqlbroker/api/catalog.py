from __future__ import annotations

from fastapi import APIRouter, Depends

from sqlbroker.models import PlanRead, ServerRead
from sqlbroker.plans import get_plan, list_plans
from sqlbroker.services.sqldb import SqlDatabaseManager, get_manager

router = APIRouter(tags=["catalog"])


@router.get("/servers", response_model=list[ServerRead])
def list_servers(manager: SqlDatabaseManager = Depends(get_manager)) -> list[ServerRead]:
    return [
        ServerRead(
            server_name=server.server_name,
            resource_group=server.resource_group,
            location=server.location,
            administrator_login=server.administrator_login,
        )
        for server in manager.servers.values()
    ]


@router.get("/plans", response_model=list[PlanRead])
def plans() -> list[PlanRead]:
    return [PlanRead.model_validate(plan.model_dump()) for plan in list_plans()]


@router.get("/plans/{plan_id}", response_model=PlanRead)
def plan(plan_id: str) -> PlanRead:
    return PlanRead.model_validate(get_plan(plan_id).model_dump())
