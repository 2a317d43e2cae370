from fastapi import APIRouter, Depends, HTTPException, UploadFile, File
from fastapi.responses import Response

from ..config import settings
from ..deps import get_catalog
from ..catalog import Catalog
from ..importers.csv_import import parse_delimited_text, run_import, template_for
from ..logs import json_log
from ..validation import ImportKind

router = APIRouter(prefix="/imports", tags=["imports"])

PROGRESS_LOG_EVERY = 100


def _progress_logger(kind: str, owner_id: str):
    def report(current: int, total: int) -> None:
        if current == total or current % PROGRESS_LOG_EVERY == 0:
            json_log("info", "import.progress", kind=kind, owner_id=owner_id, current=current, total=total)

    return report


def _read_csv_upload(file: UploadFile) -> str:
    name = (file.filename or "").strip()
    if not name.lower().endswith(".csv"):
        raise HTTPException(status_code=400, detail="Please select a CSV file")
    raw = file.file.read() or b""
    if len(raw) > settings.import_max_bytes:
        raise HTTPException(status_code=413, detail=f"file too large (max {settings.import_max_bytes} bytes)")
    try:
        return raw.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail="CSV file must be UTF-8 encoded") from None


@router.get("/{kind}/template")
def download_template(kind: ImportKind):
    return Response(
        content=template_for(kind),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{kind}_template.csv"'},
    )


@router.post("/{kind}/preview")
def preview_import(kind: ImportKind, file: UploadFile = File(...)):
    rows = parse_delimited_text(_read_csv_upload(file))
    return {"kind": kind, "total_rows": len(rows), "preview": rows[:5]}


@router.post("/{kind}")
def import_csv(kind: ImportKind, file: UploadFile = File(...), catalog: Catalog = Depends(get_catalog)):
    """
    Import categories or items from an uploaded CSV file.

    Rows are inserted one by one; bad rows are reported and skipped. Item rows
    may name their category (`category_name` + optional `subcategory`); names
    are resolved against the categories that exist when the import starts.

    The response is sent once every row is done; progress is written to the
    log as `import.progress` events.
    """
    rows = parse_delimited_text(_read_csv_upload(file))
    if not rows:
        raise HTTPException(status_code=400, detail="CSV file is empty or invalid")

    snapshot = catalog.load_categories() if kind == "items" else []
    if catalog.last_error:
        raise HTTPException(status_code=502, detail=catalog.last_error)

    storage = catalog.storage
    insert = storage.create_category if kind == "categories" else storage.create_item
    result = run_import(
        rows,
        kind,
        snapshot,
        insert,
        progress=_progress_logger(kind, storage.owner_id),
        max_errors=settings.import_max_errors,
    )
    return {"kind": kind, "total_rows": len(rows), **result.as_dict()}
