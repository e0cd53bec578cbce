import base64
import hashlib
import logging
from typing import List, Optional

from fastapi import FastAPI, File, Form, HTTPException, Query, Response, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from pydantic import TypeAdapter, ValidationError

from .config import settings
from .errors import PipelineError
from .exporters import list_exporters
from .mapping import infer_mappings, missing_required, override_mapping
from .models import (
    CatalogResponse,
    ExportedFile,
    ExportFormatInfo,
    ExportResponse,
    ExportSummary,
    FieldMapping,
    HealthResponse,
    MappingSet,
    OverrideRequest,
    PreviewResponse,
)
from .parse import parse_bytes
from .pipeline import run_pipeline
from .rules import catalog_choices

logger = logging.getLogger(__name__)

CATALOG, KEYWORD_RULES = settings.load_rules()

_mapping_list = TypeAdapter(List[FieldMapping])

app = FastAPI(
    title="csv-field-mapper",
    description="Map CSV columns onto a target field catalog and export the result",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


async def _read_csv_upload(file: UploadFile) -> bytes:
    if not (file.filename or "").lower().endswith(".csv"):
        raise HTTPException(status_code=422, detail="Only CSV files are supported")

    raw = await file.read(settings.max_upload_bytes + 1)
    if len(raw) > settings.max_upload_bytes:
        raise HTTPException(status_code=413, detail="File is too large")
    return raw


@app.get("/health", response_model=HealthResponse)
def health():
    return {"ok": True}


@app.get("/catalog", response_model=CatalogResponse)
def catalog():
    return CatalogResponse(
        fields=catalog_choices(CATALOG),
        formats=[
            ExportFormatInfo(id=e.id, label=e.label, content_type=e.content_type)
            for e in list_exporters()
        ],
    )


@app.post("/preview", response_model=PreviewResponse)
async def preview(file: UploadFile = File(...)):
    raw = await _read_csv_upload(file)
    try:
        parsed = parse_bytes(raw, row_limit=settings.preview_rows)
    except PipelineError as e:
        raise HTTPException(status_code=422, detail=str(e))

    mapping_set = infer_mappings(parsed.headers, KEYWORD_RULES)
    return PreviewResponse(
        headers=parsed.headers,
        rows=parsed.rows,
        mappings=list(mapping_set.mappings),
        missing_required=missing_required(mapping_set, CATALOG),
        total_rows=parsed.total_rows,
        truncated=parsed.truncated,
        report=parsed.report,
    )


@app.post("/mappings/override", response_model=List[FieldMapping])
def override(request: OverrideRequest):
    mapping_set = MappingSet(mappings=tuple(request.mappings))
    try:
        updated = override_mapping(mapping_set, request.source, request.target, CATALOG)
    except PipelineError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return list(updated.mappings)


@app.post("/export", response_model=ExportResponse)
async def export(
    file: UploadFile = File(...),
    format_id: str = Form("csv", alias="format"),
    mappings: Optional[str] = Form(None),
    download: bool = Query(False),
):
    raw = await _read_csv_upload(file)

    mapping_set = None
    if mappings:
        try:
            mapping_set = MappingSet(mappings=tuple(_mapping_list.validate_json(mappings)))
        except ValidationError as e:
            raise HTTPException(status_code=422, detail=f"Invalid mappings: {e.error_count()} errors")

    try:
        result = run_pipeline(
            raw,
            format_id,
            mapping_set=mapping_set,
            catalog=CATALOG,
            rules=KEYWORD_RULES,
            progress_every=settings.progress_every,
            filename_prefix=settings.export_filename_prefix,
        )
    except PipelineError as e:
        raise HTTPException(status_code=422, detail=str(e))

    bundle = result.bundle
    content = bundle.encode()
    if download:
        return Response(
            content=content,
            media_type=bundle.content_type,
            headers={"Content-Disposition": f'attachment; filename="{bundle.filename}"'},
        )

    return ExportResponse(
        export=ExportedFile(
            filename=bundle.filename,
            content_type=bundle.content_type,
            sha256=_sha256_hex(content),
            content_b64=base64.b64encode(content).decode("ascii"),
        ),
        summary=ExportSummary(
            rows=len(result.transform.records),
            columns=len(result.transform.active_targets),
            warnings=len(result.parse.report.warnings),
        ),
    )
