import pytest
from sqlmodel import SQLModel, Session, create_engine
from sqlmodel.pool import StaticPool

from fwaudit.core.config import Settings, get_settings
from fwaudit.db.session import get_session
from fwaudit.main import app
from fwaudit.models import ConfigRisk  # noqa: F401  registers the table


INSECURE_CONFIG = """
# SonicWall Configuration
hostname test-firewall
firmware version 7.0.1-5050

# Security Features
ips disable
gateway-av disable
dpi-ssl disable

# Admin Settings
admin username admin
mfa disable
wan management enable

# Firewall Rules
access-rule from WAN to LAN source any destination any service any action allow
access-rule from any to any source any destination any service any action allow

# Interfaces
interface X0 zone WAN ip 1.2.3.4
interface X1 zone LAN ip 192.168.1.1

# VPN
vpn policy test-vpn encryption DES authentication psk

# System
ntp server 0.0.0.0
"""

SECURE_CONFIG = """
hostname branch-fw-01
firmware version 7.1.2-7019
ips enable
gateway-av enable
dpi-ssl enable
atp enable
app-control enable
content-filter enable
botnet-filter enable
admin username fw-ops
mfa enable
wan management disable
https admin-port 8443
ssh disable
interface X0 zone WAN ip 203.0.113.10
interface X1 zone LAN ip 192.168.10.1 dhcp-server enable
access-rule name "LAN-out" from LAN to WAN source any destination any service HTTPS action allow description "Outbound web"
access-rule from WAN to LAN source any destination any service any action deny description "Default deny inbound"
vpn policy hq-tunnel encryption AES256 authentication rsa-cert
ntp server pool.ntp.org
ntp server time.cloudflare.com
"""


@pytest.fixture(name="insecure_config")
def insecure_config_fixture():
    return INSECURE_CONFIG


@pytest.fixture(name="secure_config")
def secure_config_fixture():
    return SECURE_CONFIG


@pytest.fixture(name="engine")
def engine_fixture():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="session")
def session_fixture(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture(name="settings")
def settings_fixture():
    return Settings(environment="test", max_config_bytes=4096, extended_checks=False)


@pytest.fixture(name="client")
def client_fixture(session, settings):
    from fastapi.testclient import TestClient

    def override_session():
        yield session

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_settings] = lambda: settings
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()
