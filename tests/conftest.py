import importlib
import os
from types import MappingProxyType

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest
from sqlmodel import Session
from starlette.testclient import TestClient
from typer.testing import CliRunner

from sqlbroker.db import get_session, init_db, make_engine
from sqlbroker.main import app
from sqlbroker.schemas import Instance, ProvisioningParameters, ServerConfig, StandardProvisioningContext
from sqlbroker.services.sqldb import SqlDatabaseManager, get_manager
from tests.deployer_utils import FakeArmDeployer

EXISTING_SERVER = ServerConfig(
    server_name="existing-1",
    resource_group="registry-rg",
    location="westeurope",
    administrator_login="registryadmin",
    administrator_login_password="Registry-Secret-1",
)


@pytest.fixture
def servers():
    return MappingProxyType({EXISTING_SERVER.server_name: EXISTING_SERVER})


@pytest.fixture
def fake_deployer():
    return FakeArmDeployer()


@pytest.fixture
def manager(servers, fake_deployer):
    return SqlDatabaseManager(servers=servers, deployer=fake_deployer, environment_name="AzurePublicCloud")


@pytest.fixture
def make_instance():
    def _make(
        *,
        server: str = "",
        firewall_start: str = "",
        firewall_end: str = "",
        resource_group: str = "request-rg",
        location: str = "eastus",
        tags: dict[str, str] | None = None,
    ) -> Instance:
        return Instance(
            instance_id="instance-1",
            plan_id="standard-s0",
            provisioning_parameters=ProvisioningParameters(
                server_name=server,
                firewall_start_ip_address=firewall_start,
                firewall_end_ip_address=firewall_end,
            ),
            standard_context=StandardProvisioningContext(
                resource_group=resource_group,
                location=location,
                tags=tags if tags is not None else {"team": "data"},
            ),
        )

    return _make


@pytest.fixture
def db_session():
    engine = make_engine("sqlite:///:memory:", echo=True)
    init_db(engine)
    with Session(engine) as session:
        yield session


@pytest.fixture
def client(db_session, manager):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_session] = override_get_db
    app.dependency_overrides[get_manager] = lambda: manager

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture()
def cli_runner(tmp_path, monkeypatch, manager):
    # Use a temporary file-based SQLite DB so each CLI invocation sees the previous one's writes
    db_path = tmp_path / "test_cli.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{db_path}")

    import sqlbroker.db as db

    importlib.reload(db)
    init_db(db.engine)

    import sqlbroker.cli as cli

    importlib.reload(cli)
    monkeypatch.setattr(cli, "get_manager", lambda: manager)

    return CliRunner(), cli.app
