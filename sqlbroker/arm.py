from __future__ import annotations

from dataclasses import dataclass
import json
import logging
from pathlib import Path
from string import Template
from tempfile import NamedTemporaryFile
from typing import Any

from sqlbroker.proc import CommandRunner, run_command, run_json_command

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"
ARM_TEMPLATE_NEW_SERVER = "arm_new_server.json"
ARM_TEMPLATE_EXISTING_SERVER = "arm_existing_server.json"

_PARAMETERS_SCHEMA = "https://schema.management.azure.com/schemas/2019-04-01/deploymentParameters.json#"


def load_template(name: str) -> str:
    return (TEMPLATES_DIR / name).read_text(encoding="utf-8")


@dataclass(frozen=True)
class ResourceGroupResult:
    name: str
    location: str
    changed: bool


class ArmDeployer:
    """Applies ARM templates to resource groups through the ``az`` CLI."""

    def __init__(self, *, runner: CommandRunner | None = None, subscription_id: str | None = None) -> None:
        self._runner = runner
        self._subscription_id = subscription_id

    def ensure_resource_group(
        self,
        name: str,
        location: str,
        tags: dict[str, str] | None = None,
    ) -> ResourceGroupResult:
        logger.info("Ensuring resource group exists: %s (%s)", name, location)
        result = run_command(
            self._az("group", "exists", "--name", name),
            runner=self._runner,
            error_message=f"Failed to check resource group {name}",
        )
        if result.stdout.strip().lower() == "true":
            logger.debug("Resource group already exists: %s", name)
            return ResourceGroupResult(name=name, location=location, changed=False)

        cmd = self._az("group", "create", "--name", name, "--location", location, "--output", "none")
        if tags:
            cmd.extend(["--tags", *(f"{key}={value}" for key, value in tags.items())])
        run_command(cmd, runner=self._runner, error_message=f"Failed to create resource group {name}")
        logger.info("Created resource group: %s", name)
        return ResourceGroupResult(name=name, location=location, changed=True)

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
        """Deploy ``template`` and return its outputs as a flat ``{name: value}`` map.

        ``template_params`` are substituted into ``$name`` placeholders of the template text before
        it is parsed; unknown placeholders are left untouched. ``location`` and ``tags`` are handed
        to the template as parameters when it declares them and the caller did not set them.
        """
        logger.info(
            "Deploying ARM template deployment='%s' resource_group='%s' location='%s'",
            deployment_name,
            resource_group,
            location,
        )
        self.ensure_resource_group(resource_group, location, tags)

        rendered = Template(template).safe_substitute(template_params) if template_params else template
        try:
            template_json = json.loads(rendered)
        except json.JSONDecodeError as exc:
            raise ValueError(f"ARM template for deployment {deployment_name} is not valid JSON") from exc

        parameters = dict(arm_params)
        declared = template_json.get("parameters", {}) if isinstance(template_json, dict) else {}
        if "location" in declared:
            parameters.setdefault("location", location)
        if "tags" in declared and tags is not None:
            parameters.setdefault("tags", dict(tags))
        logger.debug("ARM template parameters for deployment '%s': %s", deployment_name, sorted(parameters))

        with _json_file(template_json) as template_file, _json_file(_parameters_document(parameters)) as params_file:
            payload = run_json_command(
                self._az(
                    "deployment",
                    "group",
                    "create",
                    "--name",
                    deployment_name,
                    "--resource-group",
                    resource_group,
                    "--template-file",
                    str(template_file),
                    "--parameters",
                    f"@{params_file}",
                    "--output",
                    "json",
                ),
                runner=self._runner,
                error_message=f"Failed to deploy ARM template {deployment_name}",
            )

        outputs = _flatten_outputs(payload)
        logger.info("Deployment '%s' succeeded with outputs %s", deployment_name, sorted(outputs))
        return outputs

    def _az(self, *args: str) -> list[str]:
        cmd = ["az", *args]
        if self._subscription_id:
            cmd.extend(["--subscription", self._subscription_id])
        return cmd


def _parameters_document(parameters: dict[str, Any]) -> dict[str, Any]:
    return {
        "$schema": _PARAMETERS_SCHEMA,
        "contentVersion": "1.0.0.0",
        "parameters": {key: {"value": value} for key, value in parameters.items()},
    }


def _flatten_outputs(payload: Any) -> dict[str, Any]:
    properties = payload.get("properties", {}) if isinstance(payload, dict) else {}
    outputs = properties.get("outputs") if isinstance(properties, dict) else None
    if not isinstance(outputs, dict):
        return {}
    return {
        name: output.get("value") if isinstance(output, dict) else output
        for name, output in outputs.items()
    }


class _json_file:
    def __init__(self, payload: dict[str, Any]) -> None:
        self._payload = payload
        self.path: Path | None = None

    def __enter__(self) -> Path:
        tmp = NamedTemporaryFile(mode="w", encoding="utf-8", suffix=".json", delete=False)
        tmp.write(json.dumps(self._payload))
        tmp.flush()
        tmp.close()
        self.path = Path(tmp.name)
        return self.path

    def __exit__(self, exc_type, exc, tb) -> None:
        if self.path and self.path.exists():
            self.path.unlink()
