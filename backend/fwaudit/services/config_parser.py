"""
Line-oriented parser for SonicWall-style configuration exports (.exp).

Each non-comment line is tokenized (quoted substrings stay one token) and
classified by its leading keyword(s) into one DirectiveKind.  Every kind has
exactly one extractor in _EXTRACTORS which folds the tokens into a _Builder.
Lines that do not classify, or whose arguments are missing or invalid, are
dropped: parse() never raises.
"""
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterator, NamedTuple, Optional

from fwaudit.models.configuration import (
    DEFAULT_DHCP_SERVER_ENABLED,
    AccessRule,
    AdminSettings,
    ConfigObject,
    NetworkInterface,
    ParsedConfiguration,
    SecuritySettings,
    SystemSettings,
    VpnConfig,
)

logger = logging.getLogger(__name__)


class DirectiveKind(str, Enum):
    ACCESS_RULE = "access-rule"
    INTERFACE = "interface"
    VPN_POLICY = "vpn policy"
    IPS = "ips"
    GATEWAY_AV = "gateway-av"
    DPI_SSL = "dpi-ssl"
    ATP = "atp"
    APP_CONTROL = "app-control"
    CONTENT_FILTER = "content-filter"
    BOTNET_FILTER = "botnet-filter"
    ADMIN_USERNAME = "admin username"
    MFA = "mfa"
    WAN_MANAGEMENT = "wan management"
    HTTPS_ADMIN_PORT = "https admin-port"
    SSH = "ssh"
    NTP_SERVER = "ntp server"
    DNS_SERVER = "dns server"
    HOSTNAME = "hostname"
    TIMEZONE = "timezone"
    FIRMWARE_VERSION = "firmware version"
    NAT_POLICY = "nat-policy"
    ADDRESS_OBJECT = "address-object"
    SERVICE_OBJECT = "service-object"


class Directive(NamedTuple):
    kind: DirectiveKind
    args: tuple[str, ...]  # tokens after the leading keyword(s)
    line_no: int


# ---------------------------------------------------------------------------
# Lookup tables
# ---------------------------------------------------------------------------

# Keyword sequences (lower-cased) that open each directive.  Two-word keys
# are tried before one-word keys so "vpn policy" never falls through to "vpn".
_DISPATCH: dict[tuple[str, ...], DirectiveKind] = {
    ("access-rule",): DirectiveKind.ACCESS_RULE,
    ("interface",): DirectiveKind.INTERFACE,
    ("vpn", "policy"): DirectiveKind.VPN_POLICY,
    ("ips",): DirectiveKind.IPS,
    ("gateway-av",): DirectiveKind.GATEWAY_AV,
    ("dpi-ssl",): DirectiveKind.DPI_SSL,
    ("atp",): DirectiveKind.ATP,
    ("app-control",): DirectiveKind.APP_CONTROL,
    ("content-filter",): DirectiveKind.CONTENT_FILTER,
    ("botnet-filter",): DirectiveKind.BOTNET_FILTER,
    ("admin", "username"): DirectiveKind.ADMIN_USERNAME,
    ("admin", "user"): DirectiveKind.ADMIN_USERNAME,
    ("mfa",): DirectiveKind.MFA,
    ("wan", "management"): DirectiveKind.WAN_MANAGEMENT,
    ("https", "admin-port"): DirectiveKind.HTTPS_ADMIN_PORT,
    ("ssh",): DirectiveKind.SSH,
    ("ntp", "server"): DirectiveKind.NTP_SERVER,
    ("dns", "server"): DirectiveKind.DNS_SERVER,
    ("hostname",): DirectiveKind.HOSTNAME,
    ("timezone",): DirectiveKind.TIMEZONE,
    ("firmware", "version"): DirectiveKind.FIRMWARE_VERSION,
    ("nat-policy",): DirectiveKind.NAT_POLICY,
    ("address-object",): DirectiveKind.ADDRESS_OBJECT,
    ("service-object",): DirectiveKind.SERVICE_OBJECT,
}

_TOGGLE_WORDS = {
    "enable": True, "enabled": True, "on": True,
    "disable": False, "disabled": False, "off": False,
}

_RULE_KEYWORDS = {
    "name": "name",
    "from": "from_zone",
    "to": "to_zone",
    "source": "source",
    "src": "source",
    "destination": "destination",
    "dest": "destination",
    "dst": "destination",
    "service": "service",
    "action": "action",
    "description": "description",
    "comment": "description",
}
_RULE_REQUIRED = ("from_zone", "to_zone", "source", "destination", "service", "action")
_RULE_ACTIONS = {
    "allow": "allow", "accept": "allow", "permit": "allow",
    "deny": "deny", "drop": "deny", "reject": "deny",
}

_INTERFACE_KEYWORDS = {"zone": "zone", "security-zone": "zone", "ip": "ip_address", "address": "ip_address"}
_DHCP_SERVER_KEYWORD = "dhcp-server"

_VPN_KEYWORDS = {
    "encryption": "encryption",
    "cipher": "encryption",
    "authentication": "authentication",
    "auth": "authentication",
}

_MAX_PORT = 65535

_TOKEN_RE = re.compile(r'"([^"]*)"|\'([^\']*)\'|(\S+)')


# ---------------------------------------------------------------------------
# Tokenizer / classifier
# ---------------------------------------------------------------------------

def tokenize(line: str) -> list[str]:
    """Split on whitespace; a quoted substring is a single token without its quotes.

    An unbalanced quote is not an error: the stray quote stays part of a
    plain whitespace-delimited token.
    """
    tokens = []
    for match in _TOKEN_RE.finditer(line):
        double, single, bare = match.groups()
        tokens.append(next(t for t in (double, single, bare) if t is not None))
    return tokens


def classify(tokens: list[str], line_no: int) -> Optional[Directive]:
    lowered = [t.lower() for t in tokens[:2]]
    for width in (2, 1):
        if len(lowered) < width:
            continue
        kind = _DISPATCH.get(tuple(lowered[:width]))
        if kind is not None:
            return Directive(kind, tuple(tokens[width:]), line_no)
    return None


def iter_directives(text: str) -> Iterator[Directive]:
    """Yield one Directive per recognised line, in source order (1-based line numbers)."""
    for line_no, raw in enumerate(text.splitlines(), start=1):
        line = raw.rstrip()
        stripped = line.lstrip()
        if not stripped or stripped.startswith("#"):
            continue
        directive = classify(tokenize(stripped), line_no)
        if directive is None:
            logger.debug("Ignoring unrecognised line %d", line_no)
            continue
        yield directive


# ---------------------------------------------------------------------------
# Accumulator
# ---------------------------------------------------------------------------

@dataclass
class _Builder:
    rules: list = field(default_factory=list)
    nat_policies: list = field(default_factory=list)
    address_objects: list = field(default_factory=list)
    service_objects: list = field(default_factory=list)
    vpn_configs: list = field(default_factory=list)
    interfaces: list = field(default_factory=list)
    security: dict = field(default_factory=dict)
    admin: dict = field(default_factory=dict)
    admin_usernames: set = field(default_factory=set)
    system: dict = field(default_factory=dict)
    ntp_servers: list = field(default_factory=list)
    dns_servers: list = field(default_factory=list)

    def build(self) -> ParsedConfiguration:
        return ParsedConfiguration(
            rules=tuple(self.rules),
            nat_policies=tuple(self.nat_policies),
            address_objects=tuple(self.address_objects),
            service_objects=tuple(self.service_objects),
            vpn_configs=tuple(self.vpn_configs),
            interfaces=tuple(self.interfaces),
            security_settings=SecuritySettings(**self.security),
            admin_settings=AdminSettings(admin_usernames=frozenset(self.admin_usernames), **self.admin),
            system_settings=SystemSettings(
                ntp_servers=tuple(self.ntp_servers),
                dns_servers=tuple(self.dns_servers),
                **self.system,
            ),
        )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _keyword_values(tokens: tuple[str, ...], keywords: dict[str, str]) -> dict[str, str]:
    """Pick the token following each recognised keyword; first occurrence wins."""
    values: dict[str, str] = {}
    i = 0
    while i < len(tokens):
        key = keywords.get(tokens[i].lower())
        if key is not None and i + 1 < len(tokens):
            values.setdefault(key, tokens[i + 1])
            i += 2
        else:
            i += 1
    return values


def _pairs(tokens: tuple[str, ...]) -> Optional[dict[str, str]]:
    """Read tokens as key/value pairs. None when a key is left without a value."""
    if not tokens or len(tokens) % 2:
        return None
    return {tokens[i].lower(): tokens[i + 1] for i in range(0, len(tokens), 2)}


def _toggle_value(token: str) -> Optional[bool]:
    return _TOGGLE_WORDS.get(token.lower())


# ---------------------------------------------------------------------------
# Extractors: (directive, builder) -> applied?
# ---------------------------------------------------------------------------

def _extract_access_rule(d: Directive, b: _Builder) -> bool:
    values = _keyword_values(d.args, _RULE_KEYWORDS)
    if any(key not in values for key in _RULE_REQUIRED):
        return False
    action = _RULE_ACTIONS.get(values["action"].lower())
    if action is None:
        return False
    b.rules.append(AccessRule(
        from_zone=values["from_zone"],
        to_zone=values["to_zone"],
        source=values["source"],
        destination=values["destination"],
        service=values["service"],
        action=action,
        description=values.get("description"),
        name=values.get("name"),
        source_line=d.line_no,
    ))
    return True


def _extract_interface(d: Directive, b: _Builder) -> bool:
    if not d.args:
        return False
    name, rest = d.args[0], d.args[1:]
    values = _keyword_values(rest, _INTERFACE_KEYWORDS)
    if "zone" not in values:
        return False

    dhcp = DEFAULT_DHCP_SERVER_ENABLED
    lowered = [t.lower() for t in rest]
    for i, token in enumerate(lowered):
        # Accept both "dhcp-server enable" and "dhcp server enable"; bare keyword means on
        if token == _DHCP_SERVER_KEYWORD:
            state_at = i + 1
        elif token == "dhcp" and i + 1 < len(lowered) and lowered[i + 1] == "server":
            state_at = i + 2
        else:
            continue
        state = _toggle_value(lowered[state_at]) if state_at < len(lowered) else None
        dhcp = True if state is None else state
        break

    b.interfaces.append(NetworkInterface(
        name=name,
        zone=values["zone"],
        ip_address=values.get("ip_address"),
        dhcp_server_enabled=dhcp,
        source_line=d.line_no,
    ))
    return True


def _extract_vpn_policy(d: Directive, b: _Builder) -> bool:
    if not d.args:
        return False
    values = _keyword_values(d.args[1:], _VPN_KEYWORDS)
    if "encryption" not in values or "authentication" not in values:
        return False
    b.vpn_configs.append(VpnConfig(
        name=d.args[0],
        encryption=values["encryption"],
        authentication=values["authentication"],
        source_line=d.line_no,
    ))
    return True


def _toggle(target: str, key: str) -> Callable[[Directive, _Builder], bool]:
    """Build the extractor for an `<keyword> enable|disable` directive."""
    def extract(d: Directive, b: _Builder) -> bool:
        state = _toggle_value(d.args[0]) if d.args else None
        if state is None:
            return False
        getattr(b, target)[key] = state
        return True
    extract.__name__ = f"_extract_{key}"
    return extract


def _extract_admin_username(d: Directive, b: _Builder) -> bool:
    if not d.args or not d.args[0].strip():
        return False
    b.admin_usernames.add(d.args[0])
    return True


def _extract_https_admin_port(d: Directive, b: _Builder) -> bool:
    # isdigit() alone admits superscripts and other non-decimal digits int() rejects
    if not d.args or not (d.args[0].isascii() and d.args[0].isdigit()):
        return False
    port = int(d.args[0])
    if not 1 <= port <= _MAX_PORT:
        return False
    b.admin["https_admin_port"] = port
    return True


def _append_first_arg(target: str) -> Callable[[Directive, _Builder], bool]:
    def extract(d: Directive, b: _Builder) -> bool:
        if not d.args:
            return False
        getattr(b, target).append(d.args[0])
        return True
    extract.__name__ = f"_extract_{target}"
    return extract


def _set_system_field(key: str) -> Callable[[Directive, _Builder], bool]:
    def extract(d: Directive, b: _Builder) -> bool:
        if not d.args:
            return False
        b.system[key] = d.args[0]
        return True
    extract.__name__ = f"_extract_{key}"
    return extract


def _extract_nat_policy(d: Directive, b: _Builder) -> bool:
    attributes = _pairs(d.args)
    if attributes is None:
        return False
    name = attributes.pop("name", None)
    b.nat_policies.append(ConfigObject(name=name, attributes=attributes, source_line=d.line_no))
    return True


def _named_object(target: str) -> Callable[[Directive, _Builder], bool]:
    """Extractor for `address-object` / `service-object`: key/value pairs including a name."""
    def extract(d: Directive, b: _Builder) -> bool:
        attributes = _pairs(d.args)
        if attributes is None or not attributes.get("name"):
            return False
        name = attributes.pop("name")
        getattr(b, target).append(ConfigObject(name=name, attributes=attributes, source_line=d.line_no))
        return True
    extract.__name__ = f"_extract_{target}"
    return extract


_EXTRACTORS: dict[DirectiveKind, Callable[[Directive, _Builder], bool]] = {
    DirectiveKind.ACCESS_RULE: _extract_access_rule,
    DirectiveKind.INTERFACE: _extract_interface,
    DirectiveKind.VPN_POLICY: _extract_vpn_policy,
    DirectiveKind.IPS: _toggle("security", "ips"),
    DirectiveKind.GATEWAY_AV: _toggle("security", "gateway_av"),
    DirectiveKind.DPI_SSL: _toggle("security", "dpi_ssl"),
    DirectiveKind.ATP: _toggle("security", "advanced_threat_protection"),
    DirectiveKind.APP_CONTROL: _toggle("security", "app_control"),
    DirectiveKind.CONTENT_FILTER: _toggle("security", "content_filter"),
    DirectiveKind.BOTNET_FILTER: _toggle("security", "botnet_filter"),
    DirectiveKind.ADMIN_USERNAME: _extract_admin_username,
    DirectiveKind.MFA: _toggle("admin", "mfa_enabled"),
    DirectiveKind.WAN_MANAGEMENT: _toggle("admin", "wan_management_enabled"),
    DirectiveKind.HTTPS_ADMIN_PORT: _extract_https_admin_port,
    DirectiveKind.SSH: _toggle("admin", "ssh_enabled"),
    DirectiveKind.NTP_SERVER: _append_first_arg("ntp_servers"),
    DirectiveKind.DNS_SERVER: _append_first_arg("dns_servers"),
    DirectiveKind.HOSTNAME: _set_system_field("hostname"),
    DirectiveKind.TIMEZONE: _set_system_field("timezone"),
    DirectiveKind.FIRMWARE_VERSION: _set_system_field("firmware_version"),
    DirectiveKind.NAT_POLICY: _extract_nat_policy,
    DirectiveKind.ADDRESS_OBJECT: _named_object("address_objects"),
    DirectiveKind.SERVICE_OBJECT: _named_object("service_objects"),
}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

class ConfigParser:
    """Stateless parser; one instance may be shared across threads."""

    def parse(self, text: str) -> ParsedConfiguration:
        builder = _Builder()
        if not text:
            return builder.build()
        for directive in iter_directives(text):
            if not _EXTRACTORS[directive.kind](directive, builder):
                logger.debug(
                    "Dropping malformed '%s' directive on line %d",
                    directive.kind.value, directive.line_no,
                )
        return builder.build()


def parse_config(text: str) -> ParsedConfiguration:
    return ConfigParser().parse(text)
