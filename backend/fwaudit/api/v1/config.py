import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlmodel import Session

from fwaudit.core.config import Settings, get_settings
from fwaudit.db.session import get_session
from fwaudit.models.finding import RiskFinding
from fwaudit.models.risk import ConfigRisk
from fwaudit.services.config_parser import ConfigParser
from fwaudit.services.risk_engine import (
    RiskEngine,
    calculate_grade,
    calculate_score,
    count_by_severity,
)
from fwaudit.services.risk_storage import get_device_risks, replace_device_risks

logger = logging.getLogger(__name__)

router = APIRouter()

DBSession = Annotated[Session, Depends(get_session)]
AppSettings = Annotated[Settings, Depends(get_settings)]

_parser = ConfigParser()


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------

class AnalyzeBody(BaseModel):
    config_text: Optional[str] = None


class UploadBody(BaseModel):
    device_id: Optional[str] = None
    config_text: Optional[str] = None
    snapshot_id: Optional[str] = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _require_text(value: Optional[str], label: str) -> str:
    if value is None or not value.strip():
        raise HTTPException(status_code=400, detail=f"{label} must be a non-empty string")
    return value


def _validate_config_text(config_text: Optional[str], settings: Settings) -> str:
    text = _require_text(config_text, "Config text")
    if len(text.encode("utf-8")) > settings.max_config_bytes:
        raise HTTPException(
            status_code=413,
            detail=f"Config text exceeds the {settings.max_config_bytes} byte limit",
        )
    return text


def _finding_dict(f: RiskFinding) -> dict:
    return {
        "risk_type": f.risk_type.value,
        "risk_category": f.risk_category.value,
        "severity": f.severity.value,
        "description": f.description,
        "remediation": f.remediation,
        "evidence": f.evidence,
    }


def _risk_dict(r: ConfigRisk) -> dict:
    return {
        "id": str(r.id),
        "device_id": r.device_id,
        "snapshot_id": r.snapshot_id,
        "risk_type": r.risk_type,
        "risk_category": r.risk_category,
        "severity": r.severity,
        "description": r.description,
        "remediation": r.remediation,
        "evidence": r.evidence,
        "detected_at": r.detected_at,
    }


def _summary(findings: list) -> dict:
    score = calculate_score(findings)
    return {
        "risk_score": score,
        "grade": calculate_grade(score),
        "risk_summary": count_by_severity(findings),
    }


def _run_analysis(text: str, settings: Settings):
    parsed = _parser.parse(text)
    findings = RiskEngine(extended=settings.extended_checks).analyze(parsed)
    return parsed, findings


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post("/analyze")
def analyze(body: AnalyzeBody, settings: AppSettings):
    text = _validate_config_text(body.config_text, settings)
    parsed, findings = _run_analysis(text, settings)
    return {
        **_summary(findings),
        "parsed": parsed.counts(),
        "hostname": parsed.system_settings.hostname,
        "firmware_version": parsed.system_settings.firmware_version,
        "risks": [_finding_dict(f) for f in findings],
    }


@router.post("/upload")
def upload(body: UploadBody, session: DBSession, settings: AppSettings):
    device_id = _require_text(body.device_id, "Device ID")
    if body.snapshot_id is not None:
        _require_text(body.snapshot_id, "Snapshot ID")
    text = _validate_config_text(body.config_text, settings)

    parsed, findings = _run_analysis(text, settings)
    deleted, created = replace_device_risks(session, device_id, findings, body.snapshot_id)
    logger.info(
        "Config upload analysed for device %s: score=%d findings=%d",
        device_id, calculate_score(findings), len(findings),
    )
    return {
        "success": True,
        "device_id": device_id,
        "snapshot_id": body.snapshot_id,
        **_summary(findings),
        "parsed": parsed.counts(),
        "deleted_count": deleted,
        "risks": [_risk_dict(r) for r in created],
    }


@router.get("/risks/{device_id}")
def list_risks(device_id: str, session: DBSession, snapshot_id: Optional[str] = None):
    rows = get_device_risks(session, device_id, snapshot_id)
    return {
        "device_id": device_id,
        "snapshot_id": snapshot_id,
        **_summary(rows),
        "risks": [_risk_dict(r) for r in rows],
    }
