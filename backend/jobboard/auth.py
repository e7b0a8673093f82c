"""Определение IP клиента и admin-доступ.

Admin: LAN IP или Bearer-токен из config.yaml (auth.token).
Публичные эндпоинты (учёт просмотров) аутентификации не требуют,
но используют get_client_ip для ключа rate limiter'а.
"""
from __future__ import annotations

import hmac
import ipaddress
import logging
from dataclasses import dataclass

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from jobboard.config import AccessConfig, Settings, get_settings
from jobboard.services.access_log import log_access

logger = logging.getLogger(__name__)

_bearer = HTTPBearer(auto_error=False)


@dataclass
class AuthContext:
    role: str = "anonymous"           # "admin" | "anonymous"
    method: str = "none"              # "lan" | "bearer" | "none"
    client_ip: str = ""

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


# ---------------------------------------------------------------------------
# IP helpers
# ---------------------------------------------------------------------------

def get_client_ip(request: Request, access_cfg: AccessConfig) -> str:
    """Определить реальный IP клиента с учётом trusted proxy."""
    client_ip = request.client.host if request.client else ""

    # Если запрос пришёл от trusted proxy — берём X-Real-IP
    if client_ip in access_cfg.trusted_proxy_ips:
        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            return real_ip.strip()
        # Fallback на X-Forwarded-For (первый IP)
        xff = request.headers.get("X-Forwarded-For")
        if xff:
            return xff.split(",")[0].strip()

    return client_ip


def is_lan_ip(ip_str: str, subnets: list[str]) -> bool:
    """Проверить, попадает ли IP в LAN-подсети."""
    try:
        addr = ipaddress.ip_address(ip_str)
    except ValueError:
        return False
    for subnet_str in subnets:
        try:
            if addr in ipaddress.ip_network(subnet_str, strict=False):
                return True
        except ValueError:
            logger.warning("Некорректная подсеть в access.lan_subnets: %s", subnet_str)
    return False


# ---------------------------------------------------------------------------
# Dependencies для роутеров
# ---------------------------------------------------------------------------

async def get_auth_context(
    request: Request,
    settings: Settings = Depends(get_settings),
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
) -> AuthContext:
    """Определить роль. Приоритет: LAN IP → bearer."""
    client_ip = get_client_ip(request, settings.access)

    if is_lan_ip(client_ip, settings.access.lan_subnets):
        return AuthContext(role="admin", method="lan", client_ip=client_ip)

    if credentials and credentials.credentials:
        if hmac.compare_digest(
            credentials.credentials.encode(), settings.auth.token.encode(),
        ):
            return AuthContext(role="admin", method="bearer", client_ip=client_ip)

    return AuthContext(role="anonymous", method="none", client_ip=client_ip)


async def require_admin(
    ctx: AuthContext = Depends(get_auth_context),
) -> AuthContext:
    """Требует роль admin (LAN или bearer)."""
    if not ctx.is_admin:
        log_access(
            action="admin_auth", client_ip=ctx.client_ip,
            result="denied", detail="no_credentials",
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    log_access(
        action="admin_auth", role="admin", client_ip=ctx.client_ip,
        result="ok", detail=ctx.method,
    )
    return ctx
