from __future__ import annotations

from sqlbroker.services.errors import InternalException

AZURE_PUBLIC_CLOUD = "AzurePublicCloud"

SQL_DATABASE_DNS_SUFFIXES = {
    AZURE_PUBLIC_CLOUD: "database.windows.net",
    "AzureChinaCloud": "database.chinacloudapi.cn",
    "AzureUSGovernmentCloud": "database.usgovcloudapi.net",
    "AzureGermanCloud": "database.cloudapi.de",
}

_BY_UPPER_NAME = {name.upper(): suffix for name, suffix in SQL_DATABASE_DNS_SUFFIXES.items()}


def sql_database_dns_suffix(environment_name: str) -> str:
    """Return the SQL database DNS suffix of the named Azure cloud (case-insensitive)."""
    suffix = _BY_UPPER_NAME.get(environment_name.strip().upper())
    if suffix is None:
        raise InternalException(f'Unknown Azure cloud environment "{environment_name}"')
    return suffix
