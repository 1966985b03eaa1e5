from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, Column, Text
from sqlmodel import Field, SQLModel

from sqlbroker.services.constants import INSTANCE_STATUS_PROVISIONING


class InstanceBase(SQLModel):
    instance_id: str
    plan_id: str
    resource_group: Optional[str] = None
    location: Optional[str] = None


class InstanceORM(InstanceBase, table=True):
    __tablename__ = "service_instance"

    id: Optional[int] = Field(default=None, primary_key=True)
    instance_id: str = Field(index=True, unique=True)
    parameters_json: Optional[dict[str, Any]] = Field(default=None, sa_column=Column(JSON, nullable=True))
    tags_json: Optional[dict[str, Any]] = Field(default=None, sa_column=Column(JSON, nullable=True))
    # holds the administrator password of the resolved server
    context_json: Optional[dict[str, Any]] = Field(default=None, sa_column=Column(JSON, nullable=True))
    status: str = Field(default=INSTANCE_STATUS_PROVISIONING, nullable=False, index=True)
    last_completed_step: Optional[str] = Field(default=None)
    last_error: Optional[str] = Field(default=None, sa_column=Column(Text(), nullable=True))
    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)
    updated_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)


class InstanceCreate(SQLModel):
    plan_id: str
    parameters: Optional[dict[str, Any]] = None
    resource_group: Optional[str] = None
    location: Optional[str] = None
    tags: Optional[dict[str, str]] = None


class InstanceRead(InstanceBase):
    id: int
    tags: dict[str, str] = Field(default_factory=dict)
    status: str
    last_completed_step: Optional[str] = None
    last_error: Optional[str] = None
    is_new_server: Optional[bool] = None
    server_name: Optional[str] = None
    database_name: Optional[str] = None
    fully_qualified_domain_name: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class ServerRead(SQLModel):
    server_name: str
    resource_group: str
    location: str
    administrator_login: str


class PlanRead(SQLModel):
    id: str
    name: str
    description: str
    extended: dict[str, Any] = Field(default_factory=dict)
