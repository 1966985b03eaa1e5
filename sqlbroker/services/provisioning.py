from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from sqlbroker.plans import Plan
from sqlbroker.schemas import Instance, ProvisioningContext

StepFunction = Callable[[Optional[ProvisioningContext], Instance, Plan], ProvisioningContext]


@dataclass(frozen=True)
class ProvisioningStep:
    name: str
    fn: StepFunction

    def execute(
        self,
        context: ProvisioningContext | None,
        instance: Instance,
        plan: Plan,
    ) -> ProvisioningContext:
        return self.fn(context, instance, plan)


class Provisioner:
    """Ordered, uniquely named provisioning steps."""

    def __init__(self, *steps: ProvisioningStep) -> None:
        names = [step.name for step in steps]
        if len(set(names)) != len(names):
            raise ValueError(f"Provisioning step names must be unique: {names}")
        self._steps = tuple(steps)

    @property
    def steps(self) -> tuple[ProvisioningStep, ...]:
        return self._steps

    @property
    def step_names(self) -> list[str]:
        return [step.name for step in self._steps]

    def get_step(self, name: str) -> ProvisioningStep:
        for step in self._steps:
            if step.name == name:
                return step
        raise KeyError(name)

    def next_step(self, after: str | None) -> ProvisioningStep | None:
        """Return the step following ``after``; the first step when ``after`` is None."""
        if after is None:
            return self._steps[0] if self._steps else None
        index = self.step_names.index(after)
        if index + 1 < len(self._steps):
            return self._steps[index + 1]
        return None
