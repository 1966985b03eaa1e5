from __future__ import annotations

from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

_FROZEN = ConfigDict(frozen=True, populate_by_name=True)


class ProvisioningParameters(BaseModel):
    """User-supplied provisioning options for a database instance."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    server_name: str = Field(default="", alias="server")
    firewall_start_ip_address: str = Field(default="", alias="firewallStartIPAddress")
    firewall_end_ip_address: str = Field(default="", alias="firewallEndIPAddress")

    @field_validator("server_name", "firewall_start_ip_address", "firewall_end_ip_address", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class ServerConfig(BaseModel):
    """A pre-registered Azure SQL Server that databases can be attached to."""

    model_config = _FROZEN

    server_name: str = Field(alias="serverName")
    resource_group: str = Field(alias="resourceGroup")
    location: str
    administrator_login: str = Field(alias="administratorLogin")
    administrator_login_password: str = Field(alias="administratorLoginPassword", repr=False)


class StandardProvisioningContext(BaseModel):
    model_config = _FROZEN

    resource_group: str = ""
    location: str = ""
    tags: dict[str, str] = Field(default_factory=dict)


class _ContextBase(BaseModel):
    model_config = _FROZEN

    arm_deployment_name: str = Field(alias="armDeployment")
    server_name: str = Field(alias="server")
    administrator_login: str = Field(alias="administratorLogin")
    administrator_login_password: str = Field(alias="administratorLoginPassword", repr=False)
    database_name: str = Field(alias="database")


class NewServerContext(_ContextBase):
    """Context for a database on a server created by this deployment.

    The domain name is only known once the deployment has reported its outputs.
    """

    kind: Literal["new"] = "new"
    fully_qualified_domain_name: Optional[str] = Field(default=None, alias="fullyQualifiedDomainName")

    @property
    def is_new_server(self) -> bool:
        return True


class ExistingServerContext(_ContextBase):
    """Context for a database attached to a registered server."""

    kind: Literal["existing"] = "existing"
    fully_qualified_domain_name: str = Field(alias="fullyQualifiedDomainName")

    @property
    def is_new_server(self) -> bool:
        return False


ProvisioningContext = Annotated[Union[NewServerContext, ExistingServerContext], Field(discriminator="kind")]

_CONTEXT_ADAPTER: TypeAdapter[ProvisioningContext] = TypeAdapter(ProvisioningContext)


def context_from_json(data: dict[str, Any] | None) -> ProvisioningContext | None:
    if not data:
        return None
    return _CONTEXT_ADAPTER.validate_python(data)


def context_to_json(context: ProvisioningContext) -> dict[str, Any]:
    return context.model_dump(by_alias=True, mode="json")


class Instance(BaseModel):
    """Everything a provisioning step may read about the instance being provisioned."""

    model_config = ConfigDict(frozen=True)

    instance_id: str
    plan_id: str
    provisioning_parameters: ProvisioningParameters = Field(default_factory=ProvisioningParameters)
    standard_context: StandardProvisioningContext = Field(default_factory=StandardProvisioningContext)
    provisioning_context: Optional[ProvisioningContext] = None
