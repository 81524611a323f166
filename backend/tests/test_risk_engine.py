"""Tests for the risk check catalog and score calculation."""
import pytest

from fwaudit.models.configuration import ParsedConfiguration
from fwaudit.models.finding import RiskCategory, RiskType, Severity
from fwaudit.services.config_parser import parse_config
from fwaudit.services.risk_engine import (
    CORE_CHECKS,
    REMEDIATIONS,
    RISK_DEFINITIONS,
    RiskEngine,
    analyze_config,
    calculate_grade,
    calculate_score,
    check_ips_disabled,
    count_by_severity,
)

CORE_ORDER = [
    RiskType.WAN_MANAGEMENT_ENABLED,
    RiskType.OPEN_INBOUND,
    RiskType.ANY_ANY_RULE,
    RiskType.IPS_DISABLED,
    RiskType.GAV_DISABLED,
    RiskType.ADMIN_NO_MFA,
    RiskType.DEFAULT_ADMIN_USERNAME,
    RiskType.VPN_WEAK_ENCRYPTION,
    RiskType.NO_NTP,
    RiskType.DHCP_ON_WAN,
    RiskType.GUEST_NOT_ISOLATED,
    RiskType.RULE_NO_DESCRIPTION,
]

# Enables every protection the core catalog looks at, so tests only see what they add
HARDENED = "ips enable\ngateway-av enable\nmfa enable\nntp server pool.ntp.org\n"


def _types(text, extended=False):
    return [f.risk_type for f in analyze_config(parse_config(text), extended=extended)]


def _findings(text, risk_type):
    return [f for f in analyze_config(parse_config(text)) if f.risk_type == risk_type]


def test_insecure_sample_flags_required_risks(insecure_config):
    engine = RiskEngine()
    findings = engine.analyze(parse_config(insecure_config))
    types = {f.risk_type for f in findings}
    assert {
        RiskType.IPS_DISABLED,
        RiskType.GAV_DISABLED,
        RiskType.WAN_MANAGEMENT_ENABLED,
        RiskType.DEFAULT_ADMIN_USERNAME,
        RiskType.OPEN_INBOUND,
    } <= types
    assert RiskType.VPN_WEAK_ENCRYPTION in types
    assert RiskType.NO_NTP in types
    assert engine.score(findings) < 50


def test_secure_sample_scores_above_90(secure_config):
    engine = RiskEngine()
    findings = engine.analyze(parse_config(secure_config))
    assert findings == []
    assert engine.score(findings) > 90


def test_secure_sample_is_clean_under_extended_catalog(secure_config):
    assert _types(secure_config, extended=True) == []


def test_empty_configuration_findings_and_score():
    findings = analyze_config(ParsedConfiguration())
    assert [f.risk_type for f in findings] == [
        RiskType.IPS_DISABLED,
        RiskType.GAV_DISABLED,
        RiskType.ADMIN_NO_MFA,
        RiskType.NO_NTP,
    ]
    assert calculate_score(findings) == 34


def test_findings_follow_catalog_order(insecure_config):
    types = _types(insecure_config)
    positions = [CORE_ORDER.index(t) for t in types]
    assert positions == sorted(positions)


def test_core_checks_match_catalog_order():
    assert [c.__name__ for c in CORE_CHECKS] == ["check_" + t.value.lower() for t in CORE_ORDER]


def test_analyze_is_deterministic(insecure_config):
    parsed = parse_config(insecure_config)
    assert analyze_config(parsed) == analyze_config(parsed)


def test_finding_metadata_comes_from_catalog():
    finding = _findings("wan management enable", RiskType.WAN_MANAGEMENT_ENABLED)[0]
    assert finding.severity == Severity.CRITICAL
    assert finding.risk_category == RiskCategory.EXPOSURE_RISK
    assert finding.remediation == REMEDIATIONS[RiskType.WAN_MANAGEMENT_ENABLED]
    assert finding.evidence is None


def test_every_risk_type_has_definition_and_remediation():
    assert set(RISK_DEFINITIONS) == set(RiskType)
    assert set(REMEDIATIONS) == set(RiskType)


def test_open_inbound_and_missing_description_share_a_line():
    text = "access-rule from WAN to LAN source any destination any service any action allow"
    findings = analyze_config(parse_config(text))
    by_type = {f.risk_type: f for f in findings}
    assert by_type[RiskType.OPEN_INBOUND].evidence == "line 1"
    assert by_type[RiskType.RULE_NO_DESCRIPTION].evidence == "line 1"


def test_open_inbound_is_case_insensitive():
    text = HARDENED + 'access-rule from wan to lan source ANY destination Any service any action allow description "x"'
    assert _types(text) == [RiskType.OPEN_INBOUND]


@pytest.mark.parametrize("rule", [
    "access-rule from WAN to LAN source any destination any service any action deny",
    "access-rule from WAN to LAN source 1.2.3.4 destination any service any action allow",
    "access-rule from WAN to LAN source any destination any service HTTPS action allow",
    "access-rule from WAN to DMZ source any destination any service any action allow",
])
def test_open_inbound_not_flagged(rule):
    assert _findings(rule + ' description "d"', RiskType.OPEN_INBOUND) == []


@pytest.mark.parametrize("action", ["allow", "deny"])
def test_any_any_rule_ignores_action(action):
    text = HARDENED + f'access-rule from any to ANY source 10.0.0.1 destination any service DNS action {action} description "d"'
    assert _types(text) == [RiskType.ANY_ANY_RULE]


def test_rule_without_description_one_finding_per_rule():
    text = HARDENED + (
        "access-rule from LAN to WAN source any destination any service HTTP action allow\n"
        'access-rule from LAN to WAN source any destination any service DNS action allow description "dns"\n'
        'access-rule from LAN to DMZ source any destination any service SSH action allow description ""\n'
    )
    findings = _findings(text, RiskType.RULE_NO_DESCRIPTION)
    assert [f.evidence for f in findings] == ["line 5", "line 7"]


def test_default_admin_username_is_case_insensitive_and_per_account():
    text = HARDENED + "admin username Administrator\nadmin username root\nadmin username ops"
    findings = _findings(text, RiskType.DEFAULT_ADMIN_USERNAME)
    assert [f.evidence for f in findings] == ["admin username Administrator", "admin username root"]


@pytest.mark.parametrize("cipher,flagged", [
    ("DES", True), ("3des", True), ("None", True), ("AES128", False), ("AES256", False),
])
def test_vpn_weak_encryption(cipher, flagged):
    findings = _findings(f"vpn policy tun1 encryption {cipher} authentication rsa-sig", RiskType.VPN_WEAK_ENCRYPTION)
    assert bool(findings) is flagged
    if flagged:
        assert findings[0].evidence == "vpn policy tun1"


@pytest.mark.parametrize("servers,flagged", [
    ([], True),
    (["0.0.0.0"], True),
    (["0.0.0.0", "0.0.0.0"], True),
    (["0.0.0.0", "pool.ntp.org"], False),
    (["10.0.0.1"], False),
])
def test_no_ntp(servers, flagged):
    text = "\n".join(f"ntp server {s}" for s in servers)
    assert bool(_findings(text, RiskType.NO_NTP)) is flagged


def test_dhcp_on_wan_reports_each_interface():
    text = (
        "interface X0 zone WAN ip 1.2.3.4 dhcp-server enable\n"
        "interface X1 zone LAN ip 192.168.1.1 dhcp-server enable\n"
        "interface X5 zone wan dhcp server on\n"
    )
    findings = _findings(text, RiskType.DHCP_ON_WAN)
    assert [f.evidence for f in findings] == ["interface X0", "interface X5"]
    assert findings[0].severity == Severity.CRITICAL


def test_guest_interface_without_deny_rules():
    text = "interface X0 zone WAN\ninterface X1 zone LAN\ninterface X2 zone Guest"
    findings = _findings(text, RiskType.GUEST_NOT_ISOLATED)
    assert [f.evidence for f in findings] == ["interface X2"]


def test_guest_isolated_by_deny_to_lan():
    text = (
        "interface X1 zone LAN\ninterface X2 zone Guest\n"
        "access-rule from Guest to WAN source any destination any service any action allow\n"
        "access-rule from Guest to LAN source any destination any service any action deny\n"
    )
    assert _findings(text, RiskType.GUEST_NOT_ISOLATED) == []


def test_guest_must_be_denied_every_internal_zone():
    base = (
        "interface X1 zone LAN\ninterface X2 zone Guest\ninterface X3 zone DMZ\n"
        "access-rule from Guest to LAN source any destination any service any action deny\n"
    )
    assert len(_findings(base, RiskType.GUEST_NOT_ISOLATED)) == 1
    closed = base + "access-rule from guest to dmz source any destination any service any action deny\n"
    assert _findings(closed, RiskType.GUEST_NOT_ISOLATED) == []


def test_guest_deny_to_any_isolates_everything():
    text = (
        "interface X2 zone Guest\ninterface X3 zone DMZ\n"
        "access-rule from Guest to any source any destination any service any action deny\n"
    )
    assert _findings(text, RiskType.GUEST_NOT_ISOLATED) == []


def test_guest_allow_rules_do_not_isolate():
    text = (
        "interface X2 zone Guest\n"
        "access-rule from Guest to LAN source any destination any service any action allow\n"
    )
    assert len(_findings(text, RiskType.GUEST_NOT_ISOLATED)) == 1


def test_guest_allow_to_lan_wins_over_deny_to_any():
    text = (
        "interface X1 zone LAN\ninterface X2 zone Guest\n"
        "access-rule from Guest to LAN source any destination any service any action allow\n"
        "access-rule from Guest to any source any destination any service any action deny\n"
    )
    findings = _findings(text, RiskType.GUEST_NOT_ISOLATED)
    assert [f.evidence for f in findings] == ["interface X2"]


def test_guest_allow_to_other_internal_zone_is_flagged():
    text = (
        "interface X2 zone Guest\ninterface X3 zone DMZ\n"
        "access-rule from guest to LAN source any destination any service any action deny\n"
        "access-rule from guest to DMZ source any destination any service any action deny\n"
        "access-rule from GUEST to dmz source any destination web-srv service HTTP action allow\n"
    )
    assert len(_findings(text, RiskType.GUEST_NOT_ISOLATED)) == 1


def test_guest_allow_to_wan_or_any_keeps_isolation():
    text = (
        "interface X2 zone Guest\n"
        "access-rule from Guest to LAN source any destination any service any action deny\n"
        "access-rule from Guest to WAN source any destination any service any action allow\n"
        "access-rule from Guest to any source any destination any service DNS action allow\n"
    )
    assert _findings(text, RiskType.GUEST_NOT_ISOLATED) == []


def test_no_guest_interface_no_finding():
    assert _findings("interface X1 zone LAN", RiskType.GUEST_NOT_ISOLATED) == []


# ---------------------------------------------------------------------------
# Extended catalog
# ---------------------------------------------------------------------------

def test_extended_checks_are_opt_in():
    core = _types("")
    extended = _types("", extended=True)
    assert RiskType.DPI_SSL_DISABLED not in core
    assert extended[:len(core)] == core
    assert extended[len(core):] == [
        RiskType.DPI_SSL_DISABLED,
        RiskType.BOTNET_FILTER_DISABLED,
        RiskType.APP_CONTROL_DISABLED,
        RiskType.CONTENT_FILTER_DISABLED,
    ]


def test_ssh_on_wan_requires_wan_interface():
    assert RiskType.SSH_ON_WAN not in _types("ssh enable", extended=True)
    assert RiskType.SSH_ON_WAN in _types("ssh enable\ninterface X0 zone WAN", extended=True)
    assert RiskType.SSH_ON_WAN not in _types("ssh disable\ninterface X0 zone WAN", extended=True)


def test_default_admin_port():
    assert RiskType.DEFAULT_ADMIN_PORT in _types("https admin-port 443", extended=True)
    assert RiskType.DEFAULT_ADMIN_PORT not in _types("https admin-port 8443", extended=True)


@pytest.mark.parametrize("auth,flagged", [
    ("psk", True), ("pre-shared-key", True), ("rsa-cert", False), ("psk+cert", False),
])
def test_vpn_psk_only(auth, flagged):
    types = _types(f"vpn policy tun encryption AES256 authentication {auth}", extended=True)
    assert (RiskType.VPN_PSK_ONLY in types) is flagged


@pytest.mark.parametrize("version,flagged", [
    ("5.9.1.7", True), ("6.2.9-1", True), ("SonicOS 6.4.1", True),
    ("6.5.4.4", False), ("7.0.1-5050", False),
])
def test_outdated_firmware(version, flagged):
    types = _types(f'firmware version "{version}"', extended=True)
    assert (RiskType.OUTDATED_FIRMWARE in types) is flagged


def test_failing_check_is_skipped():
    def broken(config):
        raise RuntimeError("boom")

    engine = RiskEngine(checks=[broken, check_ips_disabled])
    assert [f.risk_type for f in engine.analyze(ParsedConfiguration())] == [RiskType.IPS_DISABLED]


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------

def test_score_of_no_findings_is_100():
    assert calculate_score([]) == 100


def test_score_floors_at_zero():
    findings = [{"severity": "critical"}] * 40
    assert calculate_score(findings) == 0


def test_score_weights():
    findings = [
        {"severity": "critical"}, {"severity": "high"},
        {"severity": "medium"}, {"severity": "low"}, {"severity": "unknown"},
    ]
    assert calculate_score(findings) == 100 - 25 - 15 - 5 - 1


@pytest.mark.parametrize("score,grade", [
    (100, "A"), (90, "A"), (89, "B"), (75, "B"), (74, "C"),
    (50, "C"), (49, "D"), (25, "D"), (24, "F"), (0, "F"),
])
def test_calculate_grade(score, grade):
    assert calculate_grade(score) == grade


def test_count_by_severity_sums_to_total(insecure_config):
    findings = analyze_config(parse_config(insecure_config))
    counts = count_by_severity(findings)
    assert counts["total"] == len(findings)
    assert counts["critical"] + counts["high"] + counts["medium"] + counts["low"] == counts["total"]
    assert counts["critical"] == 4
