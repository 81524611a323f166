"""
Rule-based risk engine for parsed firewall configurations.

Each check_* function receives the full ParsedConfiguration and returns a
(possibly empty) list of RiskFinding.  Checks never see each other's output.
CORE_CHECKS always run; EXTENDED_CHECKS run only when the engine is built
with extended=True.  Findings come back in catalog order, not in the order
the directives appeared in the source text.
"""
import logging
import re
from typing import Callable, Iterable, NamedTuple, Optional

from fwaudit.models.configuration import AccessRule, ParsedConfiguration
from fwaudit.models.finding import RiskCategory, RiskFinding, RiskType, Severity

logger = logging.getLogger(__name__)

Check = Callable[[ParsedConfiguration], list[RiskFinding]]


class RiskDefinition(NamedTuple):
    category: RiskCategory
    severity: Severity
    description: str


# ---------------------------------------------------------------------------
# Catalog metadata
# ---------------------------------------------------------------------------

RISK_DEFINITIONS: dict[RiskType, RiskDefinition] = {
    RiskType.WAN_MANAGEMENT_ENABLED: RiskDefinition(
        RiskCategory.EXPOSURE_RISK, Severity.CRITICAL,
        "WAN management access enabled - exposes admin interface to internet",
    ),
    RiskType.OPEN_INBOUND: RiskDefinition(
        RiskCategory.EXPOSURE_RISK, Severity.CRITICAL,
        "Unrestricted WAN to LAN access rule detected",
    ),
    RiskType.ANY_ANY_RULE: RiskDefinition(
        RiskCategory.NETWORK_MISCONFIGURATION, Severity.HIGH,
        "Overly permissive any-to-any zone rule detected",
    ),
    RiskType.IPS_DISABLED: RiskDefinition(
        RiskCategory.SECURITY_FEATURE_DISABLED, Severity.CRITICAL,
        "Intrusion Prevention System is disabled",
    ),
    RiskType.GAV_DISABLED: RiskDefinition(
        RiskCategory.SECURITY_FEATURE_DISABLED, Severity.CRITICAL,
        "Gateway Anti-Virus is disabled",
    ),
    RiskType.ADMIN_NO_MFA: RiskDefinition(
        RiskCategory.SECURITY_FEATURE_DISABLED, Severity.HIGH,
        "Multi-factor authentication not enabled for admin accounts",
    ),
    RiskType.DEFAULT_ADMIN_USERNAME: RiskDefinition(
        RiskCategory.BEST_PRACTICE_VIOLATION, Severity.MEDIUM,
        "Default admin username detected - should be renamed",
    ),
    RiskType.VPN_WEAK_ENCRYPTION: RiskDefinition(
        RiskCategory.NETWORK_MISCONFIGURATION, Severity.HIGH,
        "VPN using weak encryption algorithm",
    ),
    RiskType.NO_NTP: RiskDefinition(
        RiskCategory.BEST_PRACTICE_VIOLATION, Severity.LOW,
        "NTP not configured - time synchronization required for accurate logging",
    ),
    RiskType.DHCP_ON_WAN: RiskDefinition(
        RiskCategory.NETWORK_MISCONFIGURATION, Severity.CRITICAL,
        "DHCP server enabled on WAN interface",
    ),
    RiskType.GUEST_NOT_ISOLATED: RiskDefinition(
        RiskCategory.NETWORK_MISCONFIGURATION, Severity.HIGH,
        "Guest network not properly isolated from internal zones",
    ),
    RiskType.RULE_NO_DESCRIPTION: RiskDefinition(
        RiskCategory.BEST_PRACTICE_VIOLATION, Severity.LOW,
        "Firewall rule missing description",
    ),
    RiskType.SSH_ON_WAN: RiskDefinition(
        RiskCategory.EXPOSURE_RISK, Severity.HIGH,
        "SSH management enabled on a device with a WAN interface",
    ),
    RiskType.DEFAULT_ADMIN_PORT: RiskDefinition(
        RiskCategory.BEST_PRACTICE_VIOLATION, Severity.LOW,
        "Default HTTPS admin port in use - consider changing",
    ),
    RiskType.DPI_SSL_DISABLED: RiskDefinition(
        RiskCategory.SECURITY_FEATURE_DISABLED, Severity.MEDIUM,
        "DPI-SSL is disabled - encrypted traffic not inspected",
    ),
    RiskType.BOTNET_FILTER_DISABLED: RiskDefinition(
        RiskCategory.SECURITY_FEATURE_DISABLED, Severity.HIGH,
        "Botnet Filter is disabled",
    ),
    RiskType.APP_CONTROL_DISABLED: RiskDefinition(
        RiskCategory.SECURITY_FEATURE_DISABLED, Severity.MEDIUM,
        "Application Control is disabled",
    ),
    RiskType.CONTENT_FILTER_DISABLED: RiskDefinition(
        RiskCategory.SECURITY_FEATURE_DISABLED, Severity.MEDIUM,
        "Content Filtering is disabled",
    ),
    RiskType.VPN_PSK_ONLY: RiskDefinition(
        RiskCategory.BEST_PRACTICE_VIOLATION, Severity.MEDIUM,
        "VPN using PSK only - consider certificate-based authentication",
    ),
    RiskType.OUTDATED_FIRMWARE: RiskDefinition(
        RiskCategory.BEST_PRACTICE_VIOLATION, Severity.MEDIUM,
        "Firmware version outdated - update recommended",
    ),
}

REMEDIATIONS: dict[RiskType, str] = {
    RiskType.WAN_MANAGEMENT_ENABLED: (
        "Disable WAN management access. Admin interfaces should only be reachable "
        "from trusted internal networks; use a VPN for remote management."
    ),
    RiskType.OPEN_INBOUND: (
        "Restrict the rule to specific source hosts, destination hosts and services. "
        "Never allow unrestricted access from WAN to LAN."
    ),
    RiskType.ANY_ANY_RULE: (
        "Replace any-to-any zone rules with specific zone-pair rules that permit only "
        "required traffic. Follow the principle of least privilege."
    ),
    RiskType.IPS_DISABLED: (
        "Enable the Intrusion Prevention System to block network-based attacks, "
        "exploits and malicious traffic."
    ),
    RiskType.GAV_DISABLED: (
        "Enable Gateway Anti-Virus to stop viruses and malware at the network gateway."
    ),
    RiskType.ADMIN_NO_MFA: (
        "Enable multi-factor authentication for all admin accounts so a leaked "
        "password alone cannot grant access."
    ),
    RiskType.DEFAULT_ADMIN_USERNAME: (
        "Rename default admin accounts (admin, root, administrator) to unique, "
        "non-obvious usernames. Default names are targeted by brute-force attacks."
    ),
    RiskType.VPN_WEAK_ENCRYPTION: (
        "Upgrade the VPN policy to a strong cipher such as AES-256 or AES-128. "
        "DES, 3DES and unencrypted tunnels are not acceptable."
    ),
    RiskType.NO_NTP: (
        "Configure at least one reachable NTP server. Accurate timestamps are required "
        "for logging, event correlation and certificate validation."
    ),
    RiskType.DHCP_ON_WAN: (
        "Disable the DHCP server on WAN interfaces. DHCP should only serve internal "
        "networks such as LAN or DMZ."
    ),
    RiskType.GUEST_NOT_ISOLATED: (
        "Remove rules that allow the Guest zone into internal zones and add deny rules "
        "from Guest to every internal zone (or to any). "
        "Guest networks should only have internet access."
    ),
    RiskType.RULE_NO_DESCRIPTION: (
        "Add a description to every access rule documenting its purpose and business "
        "justification."
    ),
    RiskType.SSH_ON_WAN: (
        "Restrict SSH management to trusted internal networks and use a VPN for remote "
        "management access."
    ),
    RiskType.DEFAULT_ADMIN_PORT: (
        "Move the HTTPS admin interface off port 443 (for example to 8443) to reduce "
        "exposure to automated scanning."
    ),
    RiskType.DPI_SSL_DISABLED: (
        "Enable DPI-SSL so threats hidden in encrypted connections can be inspected."
    ),
    RiskType.BOTNET_FILTER_DISABLED: (
        "Enable the Botnet Filter to block command-and-control traffic and known "
        "malicious hosts."
    ),
    RiskType.APP_CONTROL_DISABLED: (
        "Enable Application Control to monitor application usage and enforce "
        "acceptable use policies."
    ),
    RiskType.CONTENT_FILTER_DISABLED: (
        "Enable Content Filtering to block malicious and policy-violating websites."
    ),
    RiskType.VPN_PSK_ONLY: (
        "Move VPN policies from pre-shared keys to certificate-based authentication."
    ),
    RiskType.OUTDATED_FIRMWARE: (
        "Update to the latest firmware release so published security fixes are applied."
    ),
}


# ---------------------------------------------------------------------------
# Data tables
# ---------------------------------------------------------------------------

ANY = "any"
WAN_ZONE = "wan"
LAN_ZONE = "lan"
GUEST_ZONE = "guest"

DEFAULT_ADMIN_USERNAMES = frozenset({"admin", "root", "administrator"})
WEAK_VPN_CIPHERS = frozenset({"des", "3des", "none"})
NTP_UNSET_SENTINEL = "0.0.0.0"
DEFAULT_HTTPS_ADMIN_PORT = 443

PSK_AUTH_METHODS = ("psk", "pre-shared-key", "preshared", "shared-key", "shared-secret")
CERT_AUTH_MARKERS = ("cert", "rsa", "x509")

LEGACY_FIRMWARE_PATTERNS = (
    re.compile(r"^(?:sonicos\s+)?[3-5]\.", re.IGNORECASE),
    re.compile(r"^(?:sonicos\s+)?6\.[0-4]\.", re.IGNORECASE),
    re.compile(r"\b(?:legacy|deprecated)\b", re.IGNORECASE),
)

SEVERITY_WEIGHTS: dict[Severity, int] = {
    Severity.CRITICAL: 25,
    Severity.HIGH: 15,
    Severity.MEDIUM: 5,
    Severity.LOW: 1,
}
MAX_SCORE = 100
MIN_SCORE = 0


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _finding(risk_type: RiskType, evidence: Optional[str] = None) -> RiskFinding:
    definition = RISK_DEFINITIONS[risk_type]
    return RiskFinding(
        risk_type=risk_type,
        risk_category=definition.category,
        severity=definition.severity,
        description=definition.description,
        remediation=REMEDIATIONS[risk_type],
        evidence=evidence,
    )


def _is(token: Optional[str], expected: str) -> bool:
    return (token or "").strip().lower() == expected


def _rule_evidence(rule: AccessRule) -> str:
    return f"line {rule.source_line}"


# ---------------------------------------------------------------------------
# Core checks
# ---------------------------------------------------------------------------

def check_wan_management_enabled(config: ParsedConfiguration) -> list[RiskFinding]:
    if config.admin_settings.wan_management_enabled:
        return [_finding(RiskType.WAN_MANAGEMENT_ENABLED)]
    return []


def check_open_inbound(config: ParsedConfiguration) -> list[RiskFinding]:
    """WAN→LAN allow rule with any source, destination and service."""
    return [
        _finding(RiskType.OPEN_INBOUND, _rule_evidence(rule))
        for rule in config.rules
        if rule.action == "allow"
        and _is(rule.from_zone, WAN_ZONE)
        and _is(rule.to_zone, LAN_ZONE)
        and _is(rule.source, ANY)
        and _is(rule.destination, ANY)
        and _is(rule.service, ANY)
    ]


def check_any_any_rule(config: ParsedConfiguration) -> list[RiskFinding]:
    """Rule spanning every zone pair, whatever its addresses or service."""
    return [
        _finding(RiskType.ANY_ANY_RULE, _rule_evidence(rule))
        for rule in config.rules
        if _is(rule.from_zone, ANY) and _is(rule.to_zone, ANY)
    ]


def check_ips_disabled(config: ParsedConfiguration) -> list[RiskFinding]:
    if not config.security_settings.ips:
        return [_finding(RiskType.IPS_DISABLED)]
    return []


def check_gav_disabled(config: ParsedConfiguration) -> list[RiskFinding]:
    if not config.security_settings.gateway_av:
        return [_finding(RiskType.GAV_DISABLED)]
    return []


def check_admin_no_mfa(config: ParsedConfiguration) -> list[RiskFinding]:
    if not config.admin_settings.mfa_enabled:
        return [_finding(RiskType.ADMIN_NO_MFA)]
    return []


def check_default_admin_username(config: ParsedConfiguration) -> list[RiskFinding]:
    # Usernames are a set; sort so output order does not depend on hashing
    return [
        _finding(RiskType.DEFAULT_ADMIN_USERNAME, f"admin username {username}")
        for username in sorted(config.admin_settings.admin_usernames)
        if username.lower() in DEFAULT_ADMIN_USERNAMES
    ]


def check_vpn_weak_encryption(config: ParsedConfiguration) -> list[RiskFinding]:
    return [
        _finding(RiskType.VPN_WEAK_ENCRYPTION, f"vpn policy {vpn.name}")
        for vpn in config.vpn_configs
        if vpn.encryption.lower() in WEAK_VPN_CIPHERS
    ]


def check_no_ntp(config: ParsedConfiguration) -> list[RiskFinding]:
    servers = config.system_settings.ntp_servers
    if all(server == NTP_UNSET_SENTINEL for server in servers):
        return [_finding(RiskType.NO_NTP)]
    return []


def check_dhcp_on_wan(config: ParsedConfiguration) -> list[RiskFinding]:
    return [
        _finding(RiskType.DHCP_ON_WAN, f"interface {iface.name}")
        for iface in config.interfaces
        if _is(iface.zone, WAN_ZONE) and iface.dhcp_server_enabled
    ]


def check_guest_not_isolated(config: ParsedConfiguration) -> list[RiskFinding]:
    """Guest interface that can reach an internal zone.

    Internal zones are LAN plus the zone of every interface that is neither
    WAN nor Guest.  Guest is isolated when deny rules cover every internal
    zone (a deny to "any" covers all of them) and no allow rule opens a path
    from Guest to an internal zone.  Rule order is not treated as precedence,
    so an explicit allow wins over any deny.
    """
    guests = [iface for iface in config.interfaces if _is(iface.zone, GUEST_ZONE)]
    if not guests:
        return []

    internal = {LAN_ZONE} | {
        iface.zone.strip().lower()
        for iface in config.interfaces
        if not _is(iface.zone, WAN_ZONE) and not _is(iface.zone, GUEST_ZONE)
    }
    from_guest = [rule for rule in config.rules if _is(rule.from_zone, GUEST_ZONE)]
    denied = {rule.to_zone.strip().lower() for rule in from_guest if rule.action == "deny"}
    allowed = {rule.to_zone.strip().lower() for rule in from_guest if rule.action == "allow"}

    if not (allowed & internal) and (ANY in denied or internal <= denied):
        return []
    return [_finding(RiskType.GUEST_NOT_ISOLATED, f"interface {iface.name}") for iface in guests]


def check_rule_no_description(config: ParsedConfiguration) -> list[RiskFinding]:
    return [
        _finding(RiskType.RULE_NO_DESCRIPTION, _rule_evidence(rule))
        for rule in config.rules
        if not (rule.description or "").strip()
    ]


# ---------------------------------------------------------------------------
# Extended checks
# ---------------------------------------------------------------------------

def check_ssh_on_wan(config: ParsedConfiguration) -> list[RiskFinding]:
    if not config.admin_settings.ssh_enabled:
        return []
    wan = next((iface for iface in config.interfaces if _is(iface.zone, WAN_ZONE)), None)
    if wan is None:
        return []
    return [_finding(RiskType.SSH_ON_WAN, f"interface {wan.name}")]


def check_default_admin_port(config: ParsedConfiguration) -> list[RiskFinding]:
    if config.admin_settings.https_admin_port == DEFAULT_HTTPS_ADMIN_PORT:
        return [_finding(RiskType.DEFAULT_ADMIN_PORT)]
    return []


def check_dpi_ssl_disabled(config: ParsedConfiguration) -> list[RiskFinding]:
    if not config.security_settings.dpi_ssl:
        return [_finding(RiskType.DPI_SSL_DISABLED)]
    return []


def check_botnet_filter_disabled(config: ParsedConfiguration) -> list[RiskFinding]:
    if not config.security_settings.botnet_filter:
        return [_finding(RiskType.BOTNET_FILTER_DISABLED)]
    return []


def check_app_control_disabled(config: ParsedConfiguration) -> list[RiskFinding]:
    if not config.security_settings.app_control:
        return [_finding(RiskType.APP_CONTROL_DISABLED)]
    return []


def check_content_filter_disabled(config: ParsedConfiguration) -> list[RiskFinding]:
    if not config.security_settings.content_filter:
        return [_finding(RiskType.CONTENT_FILTER_DISABLED)]
    return []


def check_vpn_psk_only(config: ParsedConfiguration) -> list[RiskFinding]:
    findings = []
    for vpn in config.vpn_configs:
        method = vpn.authentication.lower()
        if any(m in method for m in PSK_AUTH_METHODS) and not any(c in method for c in CERT_AUTH_MARKERS):
            findings.append(_finding(RiskType.VPN_PSK_ONLY, f"vpn policy {vpn.name}"))
    return findings


def check_outdated_firmware(config: ParsedConfiguration) -> list[RiskFinding]:
    version = (config.system_settings.firmware_version or "").strip()
    if version and any(p.search(version) for p in LEGACY_FIRMWARE_PATTERNS):
        return [_finding(RiskType.OUTDATED_FIRMWARE, f"firmware version {version}")]
    return []


CORE_CHECKS: list[Check] = [
    check_wan_management_enabled,
    check_open_inbound,
    check_any_any_rule,
    check_ips_disabled,
    check_gav_disabled,
    check_admin_no_mfa,
    check_default_admin_username,
    check_vpn_weak_encryption,
    check_no_ntp,
    check_dhcp_on_wan,
    check_guest_not_isolated,
    check_rule_no_description,
]

EXTENDED_CHECKS: list[Check] = [
    check_ssh_on_wan,
    check_default_admin_port,
    check_dpi_ssl_disabled,
    check_botnet_filter_disabled,
    check_app_control_disabled,
    check_content_filter_disabled,
    check_vpn_psk_only,
    check_outdated_firmware,
]

ALL_CHECKS: list[Check] = CORE_CHECKS + EXTENDED_CHECKS


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

class RiskEngine:
    """Runs a fixed list of checks; pure and safe to share across threads."""

    def __init__(self, extended: bool = False, checks: Optional[list[Check]] = None):
        if checks is None:
            checks = ALL_CHECKS if extended else CORE_CHECKS
        self.checks: tuple[Check, ...] = tuple(checks)

    def analyze(self, config: ParsedConfiguration) -> list[RiskFinding]:
        findings: list[RiskFinding] = []
        for check_fn in self.checks:
            try:
                findings.extend(check_fn(config))
            except Exception:
                logger.exception("Risk check %s failed", getattr(check_fn, "__name__", check_fn))
        logger.debug("Risk analysis produced %d findings", len(findings))
        return findings

    def score(self, findings: Iterable) -> int:
        return calculate_score(findings)


def analyze_config(config: ParsedConfiguration, extended: bool = False) -> list[RiskFinding]:
    """Run the catalog and return every finding in catalog order."""
    return RiskEngine(extended=extended).analyze(config)


# ---------------------------------------------------------------------------
# Score calculation
# ---------------------------------------------------------------------------

def _severity(item) -> Optional[Severity]:
    raw = item.severity if hasattr(item, "severity") else item.get("severity")
    try:
        return Severity(raw)
    except ValueError:
        return None


def calculate_score(findings: Iterable) -> int:
    """
    100 minus the severity weight of every finding, clamped to [0, 100] once
    at the end.  Accepts RiskFinding objects, stored rows or plain dicts with
    a `severity`; unknown severities weigh nothing.
    """
    score = MAX_SCORE
    for item in findings:
        score -= SEVERITY_WEIGHTS.get(_severity(item), 0)
    return max(MIN_SCORE, min(MAX_SCORE, score))


def calculate_grade(score: int) -> str:
    if score >= 90:
        return "A"
    elif score >= 75:
        return "B"
    elif score >= 50:
        return "C"
    elif score >= 25:
        return "D"
    return "F"


def count_by_severity(findings: Iterable) -> dict[str, int]:
    """Counts per severity plus `total`; the four counts always sum to total."""
    counts = {severity.value: 0 for severity in Severity}
    for item in findings:
        severity = _severity(item)
        if severity is not None:
            counts[severity.value] += 1
    counts["total"] = sum(counts.values())
    return counts
