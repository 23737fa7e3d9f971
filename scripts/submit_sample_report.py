"""Submit a synthetic denial + clinical note to a running service for local smoke testing.

The sample data is:
- Clinically plausible but synthetic
- Free of direct PHI (no real names, DOBs, addresses, MRNs)

Usage: APP_ENV=development python scripts/submit_sample_report.py [base_url]
"""

from __future__ import annotations

import os
import sys

import httpx

_SAMPLE_NOTE = (
    "SOAP Note - Synthetic Example\n\n"
    "S:\nLow back pain x6 weeks after lifting. Pain 7/10, worse with sitting. "
    "Completed 4 weeks of home exercise without relief.\n\n"
    "O:\nParaspinal tenderness L4-L5. Positive straight leg raise on the left at 40 degrees. "
    "Reduced sensation L5 dermatome.\n\n"
    "A:\nLumbar radiculopathy, failed conservative management.\n\n"
    "P:\nRequest MRI lumbar spine without contrast. Continue NSAIDs. Follow up after imaging.\n"
)

_SAMPLE_DENIAL = (
    "MRI lumbar spine denied: documentation does not show at least 6 weeks of "
    "conservative therapy or neurological deficit."
)


def submit_sample_report(*, base_url: str, timeout_seconds: float = 120.0) -> str:
    """POST the sample submission and return the generated report text."""
    files = [("files[]", ("synthetic_soap_note.txt", _SAMPLE_NOTE.encode("utf-8"), "text/plain"))]
    data = {"report_type": "Appeal letter", "denial_text": _SAMPLE_DENIAL}

    with httpx.Client(base_url=base_url, timeout=timeout_seconds) as client:
        resp = client.post("/api/report", data=data, files=files)

    if resp.status_code != 200:
        raise SystemExit(f"Report request failed ({resp.status_code}): {resp.text}")
    return resp.json()["report"]


def main() -> None:
    """Entry point."""
    app_env = os.getenv("APP_ENV", "production").strip().lower()
    if app_env != "development":
        print(f"Sample skipped: APP_ENV={app_env!r} (only runs in development).")
        return

    default_url = f"http://localhost:{os.getenv('PORT', '8080')}"
    base_url = sys.argv[1] if len(sys.argv) > 1 else default_url
    print(submit_sample_report(base_url=base_url))


if __name__ == "__main__":
    main()
