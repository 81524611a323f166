"""
Persistence for risk findings, keyed by device and optional snapshot.

replace_device_risks() is the upload path: every stored risk for the device
is deleted and the new findings are inserted in one transaction, so the latest
analysis is authoritative and a failed insert leaves the previous risks in
place.  store_config_risks() appends without deleting, for callers that keep
per-snapshot history.
"""
import logging
from datetime import datetime, timezone
from typing import Iterable, Optional

from sqlmodel import Session, col, select

from fwaudit.models.finding import RiskFinding
from fwaudit.models.risk import ConfigRisk
from fwaudit.services.risk_engine import count_by_severity

logger = logging.getLogger(__name__)

# Newest analysis first, catalog order inside one analysis
_NEWEST_FIRST = (col(ConfigRisk.detected_at).desc(), col(ConfigRisk.position))


def _rows(device_id: str, snapshot_id: Optional[str], findings: Iterable[RiskFinding]) -> list[ConfigRisk]:
    now = datetime.now(timezone.utc)
    return [
        ConfigRisk(
            device_id=device_id,
            snapshot_id=snapshot_id,
            risk_type=f.risk_type.value,
            risk_category=f.risk_category.value,
            severity=f.severity.value,
            description=f.description,
            remediation=f.remediation,
            evidence=f.evidence,
            position=position,
            detected_at=now,
        )
        for position, f in enumerate(findings)
    ]


def _commit(session: Session, rows: list[ConfigRisk]) -> None:
    try:
        session.commit()
    except Exception:
        session.rollback()
        raise
    for row in rows:
        session.refresh(row)


def store_config_risks(
    session: Session,
    device_id: str,
    findings: Iterable[RiskFinding],
    snapshot_id: Optional[str] = None,
) -> list[ConfigRisk]:
    rows = _rows(device_id, snapshot_id, findings)
    if not rows:
        return []
    session.add_all(rows)
    _commit(session, rows)
    return rows


def _delete(session: Session, rows) -> int:
    rows = list(rows)
    for row in rows:
        session.delete(row)
    return len(rows)


def delete_old_risks(session: Session, device_id: str) -> int:
    deleted = _delete(session, session.exec(select(ConfigRisk).where(ConfigRisk.device_id == device_id)))
    _commit(session, [])
    return deleted


def delete_risks_by_snapshot(session: Session, snapshot_id: str) -> int:
    deleted = _delete(session, session.exec(select(ConfigRisk).where(ConfigRisk.snapshot_id == snapshot_id)))
    _commit(session, [])
    return deleted


def replace_device_risks(
    session: Session,
    device_id: str,
    findings: Iterable[RiskFinding],
    snapshot_id: Optional[str] = None,
) -> tuple[int, list[ConfigRisk]]:
    """Delete-then-insert in a single commit. Returns (deleted_count, created_rows)."""
    # Materialise first: a failing findings iterable must not leave a half-done delete
    created = _rows(device_id, snapshot_id, findings)
    try:
        deleted = _delete(session, session.exec(select(ConfigRisk).where(ConfigRisk.device_id == device_id)))
        session.add_all(created)
    except Exception:
        session.rollback()
        raise
    _commit(session, created)
    logger.info(
        "Replaced risks for device %s: deleted=%d created=%d snapshot=%s",
        device_id, deleted, len(created), snapshot_id,
    )
    return deleted, created


def get_risks_by_device(
    session: Session,
    device_id: str,
    severity: Optional[str] = None,
) -> list[ConfigRisk]:
    """Stored risks for a device, newest first; catalog order within one upload."""
    q = select(ConfigRisk).where(ConfigRisk.device_id == device_id)
    if severity:
        q = q.where(ConfigRisk.severity == severity)
    return list(session.exec(q.order_by(*_NEWEST_FIRST)).all())


def get_risks_by_snapshot(session: Session, snapshot_id: str) -> list[ConfigRisk]:
    q = select(ConfigRisk).where(ConfigRisk.snapshot_id == snapshot_id).order_by(*_NEWEST_FIRST)
    return list(session.exec(q).all())


def get_device_risks(
    session: Session,
    device_id: str,
    snapshot_id: Optional[str] = None,
) -> list[ConfigRisk]:
    """Current risks for a device, or only those of one snapshot when given."""
    if snapshot_id:
        return [r for r in get_risks_by_snapshot(session, snapshot_id) if r.device_id == device_id]
    return get_risks_by_device(session, device_id)


def count_risks_by_severity(session: Session, device_id: str) -> dict[str, int]:
    return count_by_severity(get_risks_by_device(session, device_id))
