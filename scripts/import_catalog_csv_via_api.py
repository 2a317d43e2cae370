#!/usr/bin/env python3
"""
Upload a categories or items CSV to the POS API.

Default flow (local dev):
1) Start the API (uvicorn backend.app.main:app)
2) Import categories first; item rows resolve `category_name` against the
   categories that exist when the item import starts.
3) Import items.

CSV columns:
  categories: name,subcategory,brand
  items:      name,code,barcode,category_name,subcategory,cost,price,mrp,stock

--dry-run parses and validates locally without calling the API.
"""

from __future__ import annotations

import argparse
import io
import json
import os
import sys
import time
import uuid
from dataclasses import dataclass
from urllib.error import HTTPError
from urllib.request import Request, urlopen

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

from backend.app.importers.csv_import import (  # noqa: E402
    parse_delimited_text,
    validate_category_row,
    validate_item_row,
)

USER_AGENT = "pos-catalog-import/1.0"


def _die(msg: str) -> None:
    print(f"error: {msg}", file=sys.stderr)
    raise SystemExit(2)


def _multipart_file(file_field: str, filename: str, content_type: str, payload: bytes) -> tuple[bytes, str]:
    boundary = f"----pos-{uuid.uuid4().hex}"
    buf = io.BytesIO()
    buf.write(f"--{boundary}\r\n".encode("utf-8"))
    buf.write(f'Content-Disposition: form-data; name="{file_field}"; filename="{filename}"\r\n'.encode("utf-8"))
    buf.write(f"Content-Type: {content_type}\r\n\r\n".encode("utf-8"))
    buf.write(payload)
    buf.write(b"\r\n")
    buf.write(f"--{boundary}--\r\n".encode("utf-8"))
    return buf.getvalue(), f"multipart/form-data; boundary={boundary}"


@dataclass(frozen=True)
class ApiClient:
    api_base: str
    owner_id: str
    timeout_s: int = 300

    def upload_csv(self, path: str, filename: str, raw: bytes) -> dict:
        body, content_type = _multipart_file("file", filename, "text/csv", raw)
        req = Request(
            self.api_base.rstrip("/") + path,
            data=body,
            headers={
                "Accept": "application/json",
                "Content-Type": content_type,
                "X-Owner-Id": self.owner_id,
                "User-Agent": USER_AGENT,
            },
            method="POST",
        )
        try:
            with urlopen(req, timeout=self.timeout_s) as resp:
                text = resp.read().decode("utf-8")
        except HTTPError as e:
            text = e.read().decode("utf-8", errors="replace")
            raise RuntimeError(f"HTTP {e.code} {path}: {text[:500]}") from None
        return json.loads(text) if text else {}


def wait_for_health(api_base: str, timeout_s: int = 90) -> None:
    url = api_base.rstrip("/") + "/health"
    deadline = time.time() + timeout_s
    while time.time() < deadline:
        try:
            req = Request(url, headers={"Accept": "application/json", "User-Agent": USER_AGENT}, method="GET")
            with urlopen(req, timeout=5) as resp:
                if resp.status == 200:
                    return
        except Exception:
            time.sleep(1)
    _die(f"API health check timed out: {url}")


def dry_run(kind: str, text: str) -> int:
    rows = parse_delimited_text(text)
    if not rows:
        _die("CSV file is empty or invalid")
    validate = validate_category_row if kind == "categories" else validate_item_row
    errors = [e for e in (validate(r, i) for i, r in enumerate(rows)) if e]
    print(json.dumps({"kind": kind, "total_rows": len(rows), "invalid": len(errors), "errors": errors[:20]}, indent=2))
    return 1 if errors else 0


def main() -> int:
    ap = argparse.ArgumentParser()
    ap.add_argument("kind", choices=["categories", "items"])
    ap.add_argument("csv")
    ap.add_argument("--api-base", default=os.getenv("POS_API_BASE_URL") or "http://localhost:8000")
    ap.add_argument("--owner-id", default=os.getenv("POS_OWNER_ID") or "")
    ap.add_argument("--dry-run", action="store_true")
    args = ap.parse_args()

    csv_path = str(args.csv)
    if not os.path.exists(csv_path):
        _die(f"CSV not found: {csv_path}")
    if not csv_path.lower().endswith(".csv"):
        _die("Please select a CSV file")
    with open(csv_path, "rb") as f:
        raw = f.read()

    if args.dry_run:
        return dry_run(args.kind, raw.decode("utf-8-sig"))

    if not str(args.owner_id or "").strip():
        _die("--owner-id (or POS_OWNER_ID) is required")

    wait_for_health(str(args.api_base))
    cli = ApiClient(api_base=str(args.api_base), owner_id=str(args.owner_id).strip())
    res = cli.upload_csv(f"/imports/{args.kind}", os.path.basename(csv_path), raw)
    print(json.dumps(res, indent=2))
    return 0 if not res.get("failed") else 1


if __name__ == "__main__":
    raise SystemExit(main())
