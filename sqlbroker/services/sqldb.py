from __future__ import annotations

from functools import lru_cache
import logging
from typing import Any, Mapping

from sqlbroker import config, generate
from sqlbroker.arm import ARM_TEMPLATE_EXISTING_SERVER, ARM_TEMPLATE_NEW_SERVER, ArmDeployer, load_template
from sqlbroker.environments import sql_database_dns_suffix
from sqlbroker.plans import Plan
from sqlbroker.schemas import (
    ExistingServerContext,
    Instance,
    NewServerContext,
    ProvisioningContext,
    ProvisioningParameters,
    ServerConfig,
)
from sqlbroker.services.arm_parameters import (
    build_arm_template_parameters,
    build_existing_server_arm_template_parameters,
)
from sqlbroker.services.constants import STEP_DEPLOY_ARM_TEMPLATE, STEP_PRE_PROVISION
from sqlbroker.services.errors import InternalException, NotFoundException
from sqlbroker.services.provisioning import Provisioner, ProvisioningStep
from sqlbroker.services.validation import validate_provisioning_parameters

logger = logging.getLogger(__name__)

FQDN_OUTPUT = "fullyQualifiedDomainName"


def _missing_server_message(server_name: str) -> str:
    return f'can\'t find serverName "{server_name}" in Azure SQL Server configuration'


class SqlDatabaseManager:
    """Provisions Azure SQL databases on new or pre-registered servers."""

    def __init__(
        self,
        *,
        servers: Mapping[str, ServerConfig],
        deployer: ArmDeployer,
        environment_name: str | None = None,
    ) -> None:
        self._servers = servers
        self._deployer = deployer
        self._environment_name = environment_name

    @property
    def servers(self) -> Mapping[str, ServerConfig]:
        return self._servers

    def validate_provisioning_parameters(self, params: ProvisioningParameters) -> None:
        validate_provisioning_parameters(params, self._servers)

    def get_provisioner(self, plan: Plan) -> Provisioner:
        return Provisioner(
            ProvisioningStep(STEP_PRE_PROVISION, self.pre_provision),
            ProvisioningStep(STEP_DEPLOY_ARM_TEMPLATE, self.deploy_arm_template),
        )

    def pre_provision(
        self,
        context: ProvisioningContext | None,
        instance: Instance,
        plan: Plan,
    ) -> ProvisioningContext:
        """Pick the scenario and allocate (or look up) the server, credentials and database name.

        Any incoming context is discarded: re-running this step starts from scratch.
        """
        params = instance.provisioning_parameters
        if not params.server_name:
            resolved: ProvisioningContext = NewServerContext(
                arm_deployment_name=generate.new_uuid(),
                server_name=generate.new_uuid(),
                administrator_login=generate.new_identifier(),
                administrator_login_password=generate.new_password(),
                database_name=generate.new_identifier(),
            )
            logger.info(
                "Instance %s will create new server %s (database %s)",
                instance.instance_id,
                resolved.server_name,
                resolved.database_name,
            )
            return resolved

        server = self._servers.get(params.server_name)
        if server is None:
            raise NotFoundException(_missing_server_message(params.server_name))

        suffix = self._sql_database_dns_suffix()
        resolved = ExistingServerContext(
            arm_deployment_name=generate.new_uuid(),
            server_name=server.server_name,
            administrator_login=server.administrator_login,
            administrator_login_password=server.administrator_login_password,
            database_name=generate.new_identifier(),
            fully_qualified_domain_name=f"{server.server_name}.{suffix}",
        )
        logger.info(
            "Instance %s will use existing server %s (database %s)",
            instance.instance_id,
            resolved.server_name,
            resolved.database_name,
        )
        return resolved

    def deploy_arm_template(
        self,
        context: ProvisioningContext | None,
        instance: Instance,
        plan: Plan,
    ) -> ProvisioningContext:
        if context is None:
            raise InternalException(f"Instance {instance.instance_id} has no provisioning context to deploy")
        if isinstance(context, NewServerContext):
            return self._deploy_new_server(context, instance, plan)
        return self._deploy_existing_server(context, instance, plan)

    def _deploy_new_server(self, context: NewServerContext, instance: Instance, plan: Plan) -> NewServerContext:
        standard = instance.standard_context
        outputs = self._deploy(
            context.arm_deployment_name,
            standard.resource_group,
            standard.location,
            ARM_TEMPLATE_NEW_SERVER,
            build_arm_template_parameters(plan, context, instance.provisioning_parameters),
            standard.tags,
        )
        fqdn = outputs.get(FQDN_OUTPUT)
        if not isinstance(fqdn, str):
            raise InternalException(
                f"error retrieving fully qualified domain name from deployment {context.arm_deployment_name}: "
                f"output {FQDN_OUTPUT!r} is {fqdn!r}"
            )
        return context.model_copy(update={"fully_qualified_domain_name": fqdn})

    def _deploy_existing_server(
        self,
        context: ExistingServerContext,
        instance: Instance,
        plan: Plan,
    ) -> ExistingServerContext:
        server = self._servers.get(instance.provisioning_parameters.server_name)
        if server is None:
            raise InternalException(_missing_server_message(instance.provisioning_parameters.server_name))

        self._deploy(
            context.arm_deployment_name,
            server.resource_group,
            server.location,
            ARM_TEMPLATE_EXISTING_SERVER,
            build_existing_server_arm_template_parameters(plan, context),
            instance.standard_context.tags,
        )
        return context

    def _deploy(
        self,
        deployment_name: str,
        resource_group: str,
        location: str,
        template_name: str,
        arm_params: dict[str, Any],
        tags: dict[str, str],
    ) -> dict[str, Any]:
        try:
            return self._deployer.deploy(
                deployment_name,
                resource_group,
                location,
                load_template(template_name),
                None,
                arm_params,
                tags,
            )
        except Exception as exc:
            logger.warning("ARM deployment %s failed: %s", deployment_name, exc)
            raise InternalException(f"error deploying ARM template: {exc}") from exc

    def _sql_database_dns_suffix(self) -> str:
        environment_name = self._environment_name or config.azure_environment_name()
        return sql_database_dns_suffix(environment_name)


@lru_cache(maxsize=1)
def get_manager() -> SqlDatabaseManager:
    return SqlDatabaseManager(
        servers=config.get_server_registry(),
        deployer=ArmDeployer(subscription_id=config.azure_subscription_id()),
        environment_name=config.azure_environment_name(),
    )
