from __future__ import annotations

import pytest

from sqlbroker.environments import sql_database_dns_suffix
from sqlbroker.services.errors import InternalException


@pytest.mark.parametrize(
    ("name", "suffix"),
    [
        ("AzurePublicCloud", "database.windows.net"),
        ("azurepubliccloud", "database.windows.net"),
        ("AzureChinaCloud", "database.chinacloudapi.cn"),
        ("AzureUSGovernmentCloud", "database.usgovcloudapi.net"),
        ("AzureGermanCloud", "database.cloudapi.de"),
    ],
)
def test_sql_database_dns_suffix(name: str, suffix: str) -> None:
    assert sql_database_dns_suffix(name) == suffix


def test_unknown_environment_is_internal_error() -> None:
    with pytest.raises(InternalException):
        sql_database_dns_suffix("AzureStackCloud")
