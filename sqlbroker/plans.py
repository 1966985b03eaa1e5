from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from sqlbroker.services.errors import NotFoundException


class Plan(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str
    # ARM properties of the database tier: edition, requestedServiceObjectiveName, maxSizeBytes
    extended: dict[str, Any] = Field(default_factory=dict)

    def extended_property(self, key: str) -> Any:
        return self.extended.get(key)


PLANS: dict[str, Plan] = {
    plan.id: plan
    for plan in (
        Plan(
            id="basic",
            name="basic",
            description="Basic Tier, 5 DTUs, 2GB",
            extended={
                "edition": "Basic",
                "requestedServiceObjectiveName": "Basic",
                "maxSizeBytes": "2147483648",
            },
        ),
        Plan(
            id="standard-s0",
            name="standard-s0",
            description="Standard Tier, 10 DTUs, 250GB",
            extended={
                "edition": "Standard",
                "requestedServiceObjectiveName": "S0",
                "maxSizeBytes": "268435456000",
            },
        ),
        Plan(
            id="standard-s1",
            name="standard-s1",
            description="Standard Tier, 20 DTUs, 250GB",
            extended={
                "edition": "Standard",
                "requestedServiceObjectiveName": "S1",
                "maxSizeBytes": "268435456000",
            },
        ),
        Plan(
            id="premium-p1",
            name="premium-p1",
            description="Premium Tier, 125 DTUs, 500GB",
            extended={
                "edition": "Premium",
                "requestedServiceObjectiveName": "P1",
                "maxSizeBytes": "536870912000",
            },
        ),
    )
}


def list_plans() -> list[Plan]:
    return list(PLANS.values())


def get_plan(plan_id: str) -> Plan:
    if not (plan := PLANS.get(plan_id)):
        raise NotFoundException(f'Plan "{plan_id}" not found')
    return plan
