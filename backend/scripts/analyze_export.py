"""
Analyze a configuration export from disk and print the findings.
Optionally stores them for a device (replacing that device's previous risks).
Run manually: python -m scripts.analyze_export path/to/config.exp [--device-id ID]
"""
import argparse
import json
import logging
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlmodel import Session

from fwaudit.core.config import get_settings
from fwaudit.db.session import create_all_tables, get_engine
from fwaudit.services.config_parser import parse_config
from fwaudit.services.risk_engine import (
    RiskEngine,
    calculate_grade,
    calculate_score,
    count_by_severity,
)
from fwaudit.services.risk_storage import replace_device_risks

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("analyze_export")


def analyze_export(path: str, device_id=None, snapshot_id=None) -> dict:
    settings = get_settings()
    with open(path, encoding="utf-8", errors="replace") as fh:
        text = fh.read()

    parsed = parse_config(text)
    findings = RiskEngine(extended=settings.extended_checks).analyze(parsed)
    score = calculate_score(findings)

    if device_id:
        create_all_tables()
        with Session(get_engine()) as s:
            deleted, created = replace_device_risks(s, device_id, findings, snapshot_id)
        logger.info("Stored %d risks for %s (replaced %d)", len(created), device_id, deleted)

    return {
        "risk_score": score,
        "grade": calculate_grade(score),
        "risk_summary": count_by_severity(findings),
        "parsed": parsed.counts(),
        "risks": [f.model_dump(mode="json") for f in findings],
    }


def main(argv=None):
    ap = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    ap.add_argument("path")
    ap.add_argument("--device-id")
    ap.add_argument("--snapshot-id")
    args = ap.parse_args(argv)
    print(json.dumps(analyze_export(args.path, args.device_id, args.snapshot_id), indent=2))


if __name__ == "__main__":
    main()
