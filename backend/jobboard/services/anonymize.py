"""Грубая анонимизация IP перед записью в job_views."""
from __future__ import annotations

import ipaddress

UNKNOWN_ADDRESS = "unknown"


def anonymize_ip(address: str | None) -> str:
    """Обнулить последний компонент адреса.

    IPv4: последний октет (203.0.113.77 -> 203.0.113.0).
    IPv6: последняя 16-битная группа, zone id отбрасывается.
    IPv4-mapped IPv6 обрабатывается как IPv4.
    Пустая или нераспознанная строка -> "unknown".
    """
    if not address:
        return UNKNOWN_ADDRESS
    raw = address.strip().split("%", 1)[0]
    try:
        addr = ipaddress.ip_address(raw)
    except ValueError:
        return UNKNOWN_ADDRESS

    if isinstance(addr, ipaddress.IPv6Address) and addr.ipv4_mapped:
        addr = addr.ipv4_mapped

    prefix = 24 if addr.version == 4 else 112
    network = ipaddress.ip_network(f"{addr}/{prefix}", strict=False)
    return str(network.network_address)
