from __future__ import annotations

from typing import Any


class FakeArmDeployer:
    def __init__(self, outputs: dict[str, Any] | None = None) -> None:
        self.calls: list[dict[str, Any]] = []
        self.outputs: dict[str, Any] = (
            outputs if outputs is not None else {"fullyQualifiedDomainName": "fake-server.database.windows.net"}
        )
        self.raise_on_deploy: Exception | None = None

    def deploy(
        self,
        deployment_name: str,
        resource_group: str,
        location: str,
        template: str,
        template_params: dict[str, Any] | None,
        arm_params: dict[str, Any],
        tags: dict[str, str] | None,
    ) -> dict[str, Any]:
        self.calls.append(
            {
                "deployment_name": deployment_name,
                "resource_group": resource_group,
                "location": location,
                "template": template,
                "template_params": template_params,
                "arm_params": arm_params,
                "tags": tags,
            }
        )
        if self.raise_on_deploy is not None:
            raise self.raise_on_deploy
        return dict(self.outputs)
