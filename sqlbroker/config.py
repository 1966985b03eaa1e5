from __future__ import annotations

from functools import lru_cache
import logging
import os
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

import yaml
from jsonschema import ValidationError
from jsonschema import validate as jsonschema_validate

from sqlbroker.environments import AZURE_PUBLIC_CLOUD
from sqlbroker.schemas import ServerConfig
from sqlbroker.services.errors import ConfigurationException

logger = logging.getLogger(__name__)

ServerRegistry = Mapping[str, ServerConfig]

_NON_EMPTY_STRING = {"type": "string", "minLength": 1}

SERVER_ENTRY_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "serverName": _NON_EMPTY_STRING,
        "resourceGroup": _NON_EMPTY_STRING,
        "location": _NON_EMPTY_STRING,
        "administratorLogin": _NON_EMPTY_STRING,
        "administratorLoginPassword": _NON_EMPTY_STRING,
    },
    "required": [
        "serverName",
        "resourceGroup",
        "location",
        "administratorLogin",
        "administratorLoginPassword",
    ],
    "additionalProperties": False,
}

SERVERS_DOCUMENT_SCHEMA: dict[str, Any] = {
    "type": "array",
    "items": SERVER_ENTRY_SCHEMA,
}


def azure_environment_name() -> str:
    return os.getenv("SQLBROKER_AZURE_ENVIRONMENT", AZURE_PUBLIC_CLOUD)


def azure_subscription_id() -> str | None:
    return os.getenv("SQLBROKER_AZURE_SUBSCRIPTION_ID") or None


def default_resource_group() -> str | None:
    return os.getenv("SQLBROKER_DEFAULT_RESOURCE_GROUP") or None


def default_location() -> str | None:
    return os.getenv("SQLBROKER_DEFAULT_LOCATION") or None


def parse_server_registry(document: str) -> ServerRegistry:
    """Parse a YAML (or JSON) list of server entries into a read-only registry keyed by server name.

    A top-level ``servers:`` key holding the list is accepted as well.
    """
    try:
        payload = yaml.safe_load(document)
    except yaml.YAMLError as exc:
        raise ConfigurationException(f"Server registry is not valid YAML/JSON: {exc}") from exc

    if payload is None:
        payload = []
    if isinstance(payload, dict) and "servers" in payload:
        payload = payload["servers"] or []

    try:
        jsonschema_validate(instance=payload, schema=SERVERS_DOCUMENT_SCHEMA)
    except ValidationError as exc:
        raise ConfigurationException(f"Server registry is invalid: {exc.message}") from exc

    servers: dict[str, ServerConfig] = {}
    for entry in payload:
        server = ServerConfig.model_validate(entry)
        if server.server_name in servers:
            raise ConfigurationException(f'Duplicate serverName "{server.server_name}" in server registry')
        servers[server.server_name] = server
    return MappingProxyType(servers)


def load_server_registry() -> ServerRegistry:
    """Load the registry from ``SQLBROKER_SERVERS_FILE`` or the inline ``SQLBROKER_SERVERS`` document."""
    if path := os.getenv("SQLBROKER_SERVERS_FILE"):
        try:
            document = Path(path).read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigurationException(f"Unable to read server registry file {path}: {exc}") from exc
        source = path
    else:
        document = os.getenv("SQLBROKER_SERVERS", "")
        source = "SQLBROKER_SERVERS"
    registry = parse_server_registry(document)
    logger.info("Loaded %s registered SQL server(s) from %s", len(registry), source)
    return registry


@lru_cache(maxsize=1)
def get_server_registry() -> ServerRegistry:
    return load_server_registry()
