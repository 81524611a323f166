"""
Structured model of a parsed firewall configuration export.

Every field carries an explicit default so an empty export still yields a
complete ParsedConfiguration.  Security features default to disabled: a
directive that never appears is treated as "off".
"""
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

DEFAULT_FEATURE_ENABLED = False
DEFAULT_MFA_ENABLED = False
DEFAULT_WAN_MANAGEMENT_ENABLED = False
DEFAULT_SSH_ENABLED = False
DEFAULT_HTTPS_ADMIN_PORT: Optional[int] = None
DEFAULT_DHCP_SERVER_ENABLED = False


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

class AccessRule(_Frozen):
    from_zone: str
    to_zone: str
    source: str
    destination: str
    service: str
    action: Literal["allow", "deny"]
    description: Optional[str] = None
    name: Optional[str] = None
    source_line: int


class ConfigObject(_Frozen):
    """NAT policy, address object or service object: a name plus raw key/value pairs."""
    name: Optional[str] = None
    attributes: dict[str, str] = Field(default_factory=dict)
    source_line: int


class VpnConfig(_Frozen):
    name: str
    encryption: str  # cipher token as written, e.g. AES256, 3DES
    authentication: str  # method token as written, e.g. psk, rsa-sig
    source_line: int


class NetworkInterface(_Frozen):
    name: str
    zone: str
    ip_address: Optional[str] = None
    dhcp_server_enabled: bool = DEFAULT_DHCP_SERVER_ENABLED
    source_line: int


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

class SecuritySettings(_Frozen):
    ips: bool = DEFAULT_FEATURE_ENABLED
    gateway_av: bool = DEFAULT_FEATURE_ENABLED
    dpi_ssl: bool = DEFAULT_FEATURE_ENABLED
    advanced_threat_protection: bool = DEFAULT_FEATURE_ENABLED
    app_control: bool = DEFAULT_FEATURE_ENABLED
    content_filter: bool = DEFAULT_FEATURE_ENABLED
    botnet_filter: bool = DEFAULT_FEATURE_ENABLED


class AdminSettings(_Frozen):
    admin_usernames: frozenset[str] = frozenset()
    mfa_enabled: bool = DEFAULT_MFA_ENABLED
    wan_management_enabled: bool = DEFAULT_WAN_MANAGEMENT_ENABLED
    https_admin_port: Optional[int] = DEFAULT_HTTPS_ADMIN_PORT
    ssh_enabled: bool = DEFAULT_SSH_ENABLED

    @field_serializer("admin_usernames")
    def _sorted_usernames(self, usernames: frozenset[str]) -> list[str]:
        return sorted(usernames)


class SystemSettings(_Frozen):
    hostname: Optional[str] = None
    firmware_version: Optional[str] = None
    timezone: Optional[str] = None
    ntp_servers: tuple[str, ...] = ()
    dns_servers: tuple[str, ...] = ()


class ParsedConfiguration(_Frozen):
    rules: tuple[AccessRule, ...] = ()
    nat_policies: tuple[ConfigObject, ...] = ()
    address_objects: tuple[ConfigObject, ...] = ()
    service_objects: tuple[ConfigObject, ...] = ()
    vpn_configs: tuple[VpnConfig, ...] = ()
    interfaces: tuple[NetworkInterface, ...] = ()
    security_settings: SecuritySettings = Field(default_factory=SecuritySettings)
    admin_settings: AdminSettings = Field(default_factory=AdminSettings)
    system_settings: SystemSettings = Field(default_factory=SystemSettings)

    def counts(self) -> dict[str, int]:
        return {
            "rules": len(self.rules),
            "nat_policies": len(self.nat_policies),
            "address_objects": len(self.address_objects),
            "service_objects": len(self.service_objects),
            "vpn_configs": len(self.vpn_configs),
            "interfaces": len(self.interfaces),
        }
