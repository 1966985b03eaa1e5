from __future__ import annotations

import ipaddress
from typing import Mapping

from sqlbroker.schemas import ProvisioningParameters, ServerConfig
from sqlbroker.services.errors import ValidationException

FIELD_SERVER_NAME = "serverName"
FIELD_FIREWALL_START = "firewallStartIPAddress"
FIELD_FIREWALL_END = "firewallEndIPAddress"


def parse_ipv4(value: str) -> ipaddress.IPv4Address | None:
    """Parse a dotted-decimal IPv4 address, returning None for anything else (IPv6 included)."""
    try:
        return ipaddress.IPv4Address(value)
    except ipaddress.AddressValueError:
        return None


def validate_provisioning_parameters(
    params: ProvisioningParameters,
    servers: Mapping[str, ServerConfig],
) -> None:
    """Raise ValidationException for the first problem found in ``params``; no side effects."""
    if params.server_name and params.server_name not in servers:
        raise ValidationException(
            FIELD_SERVER_NAME,
            f'can\'t find serverName "{params.server_name}" in Azure SQL Server configuration',
        )

    start, end = params.firewall_start_ip_address, params.firewall_end_ip_address
    if start or end:
        if not start:
            raise ValidationException(FIELD_FIREWALL_START, f"must be set when {FIELD_FIREWALL_END} is set")
        if not end:
            raise ValidationException(FIELD_FIREWALL_END, f"must be set when {FIELD_FIREWALL_START} is set")

    start_ip = parse_ipv4(start) if start else None
    if start and start_ip is None:
        raise ValidationException(FIELD_FIREWALL_START, f'invalid value: "{start}"')
    end_ip = parse_ipv4(end) if end else None
    if end and end_ip is None:
        raise ValidationException(FIELD_FIREWALL_END, f'invalid value: "{end}"')

    # ARM requires startIpAddress <= endIpAddress; compare the packed big-endian bytes
    if start_ip is not None and end_ip is not None and start_ip.packed > end_ip.packed:
        raise ValidationException(
            FIELD_FIREWALL_END,
            f'invalid value: "{end}". must be greater than or equal to {FIELD_FIREWALL_START}',
        )
