from fwaudit.models.risk import ConfigRisk
from fwaudit.models.finding import RiskCategory, RiskFinding, RiskType, Severity
from fwaudit.models.configuration import (
    AccessRule,
    AdminSettings,
    ConfigObject,
    NetworkInterface,
    ParsedConfiguration,
    SecuritySettings,
    SystemSettings,
    VpnConfig,
)

__all__ = [
    "ConfigRisk",
    "RiskCategory", "RiskFinding", "RiskType", "Severity",
    "AccessRule", "AdminSettings", "ConfigObject", "NetworkInterface",
    "ParsedConfiguration", "SecuritySettings", "SystemSettings", "VpnConfig",
]
