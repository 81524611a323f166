from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class RiskCategory(str, Enum):
    NETWORK_MISCONFIGURATION = "network_misconfiguration"
    EXPOSURE_RISK = "exposure_risk"
    SECURITY_FEATURE_DISABLED = "security_feature_disabled"
    BEST_PRACTICE_VIOLATION = "best_practice_violation"


class Severity(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class RiskType(str, Enum):
    # Core catalog
    WAN_MANAGEMENT_ENABLED = "WAN_MANAGEMENT_ENABLED"
    OPEN_INBOUND = "OPEN_INBOUND"
    ANY_ANY_RULE = "ANY_ANY_RULE"
    IPS_DISABLED = "IPS_DISABLED"
    GAV_DISABLED = "GAV_DISABLED"
    ADMIN_NO_MFA = "ADMIN_NO_MFA"
    DEFAULT_ADMIN_USERNAME = "DEFAULT_ADMIN_USERNAME"
    VPN_WEAK_ENCRYPTION = "VPN_WEAK_ENCRYPTION"
    NO_NTP = "NO_NTP"
    DHCP_ON_WAN = "DHCP_ON_WAN"
    GUEST_NOT_ISOLATED = "GUEST_NOT_ISOLATED"
    RULE_NO_DESCRIPTION = "RULE_NO_DESCRIPTION"
    # Extended catalog
    SSH_ON_WAN = "SSH_ON_WAN"
    DEFAULT_ADMIN_PORT = "DEFAULT_ADMIN_PORT"
    DPI_SSL_DISABLED = "DPI_SSL_DISABLED"
    BOTNET_FILTER_DISABLED = "BOTNET_FILTER_DISABLED"
    APP_CONTROL_DISABLED = "APP_CONTROL_DISABLED"
    CONTENT_FILTER_DISABLED = "CONTENT_FILTER_DISABLED"
    VPN_PSK_ONLY = "VPN_PSK_ONLY"
    OUTDATED_FIRMWARE = "OUTDATED_FIRMWARE"


class RiskFinding(BaseModel):
    model_config = ConfigDict(frozen=True)

    risk_type: RiskType
    risk_category: RiskCategory
    severity: Severity
    description: str
    remediation: str
    evidence: Optional[str] = None  # e.g. "line 12", "interface X0"
