import logging

from fastapi import FastAPI, UploadFile, File, HTTPException, Query

from . import config
from .errors import CsvReadError, KenAllError, MalformedRowError
from .models import ErrorDetail, NormalizeResponse, HealthResponse
from .normalize import NormalizeOptions, normalize_csv_bytes

logger = logging.getLogger(__name__)

app = FastAPI(
    title="kenall-normalizer",
    description="Normalize the Japan Post KEN_ALL.CSV zip code table into one row per address area",
    version="0.1.0",
)


@app.get("/health", response_model=HealthResponse)
def health():
    return {"ok": True}


@app.post("/normalize", response_model=NormalizeResponse)
async def normalize_csv(
    file: UploadFile = File(...),
    trim: bool = Query(config.DEFAULT_TRIM, description="Trim spaces from each field"),
    width: bool = Query(config.DEFAULT_WIDTH, description="Fold halfwidth kana to fullwidth, fullwidth ASCII to halfwidth"),
    utf8: bool = Query(config.DEFAULT_UTF8, description="Write UTF-8 instead of Shift_JIS (cp932)"),
    source_encoding: str = Query(config.DEFAULT_SOURCE_ENCODING, description="Input encoding, or 'auto'"),
):
    if not file.filename.lower().endswith(".csv"):
        raise HTTPException(status_code=422, detail="Only CSV files are supported")

    raw = await file.read()
    options = NormalizeOptions(trim=trim, width=width, utf8=utf8, source_encoding=source_encoding)
    try:
        return normalize_csv_bytes(raw, options)
    except KenAllError as ex:
        logger.info("rejected %s: %s", file.filename, ex)
        row = ex.line_no if isinstance(ex, (MalformedRowError, CsvReadError)) else None
        detail = ErrorDetail(issue=ex.issue, row=row, message=str(ex))
        raise HTTPException(status_code=422, detail=detail.model_dump()) from ex
