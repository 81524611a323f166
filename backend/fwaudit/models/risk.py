from typing import Optional
from datetime import datetime, timezone
import uuid

from sqlmodel import SQLModel, Field, Column
import sqlalchemy as sa


class ConfigRisk(SQLModel, table=True):
    __tablename__ = "config_risks"
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    device_id: str = Field(max_length=64, index=True)
    snapshot_id: Optional[str] = Field(default=None, max_length=64, index=True)
    risk_type: str = Field(max_length=64)
    # network_misconfiguration | exposure_risk | security_feature_disabled | best_practice_violation
    risk_category: str = Field(max_length=64)
    severity: str = Field(max_length=16)  # critical | high | medium | low
    description: str = Field(max_length=1024)
    remediation: Optional[str] = Field(default=None, max_length=1024)
    # Quotes config tokens (usernames, policy names, firmware strings) of any length
    evidence: Optional[str] = Field(default=None, sa_column=Column(sa.Text, nullable=True))
    # Catalog order of the finding within its analysis run
    position: int = Field(default=0)
    detected_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(sa.DateTime(timezone=True)),
    )
