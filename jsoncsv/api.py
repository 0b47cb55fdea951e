# api.py
import logging
import shutil
import uuid
from pathlib import Path
from typing import List, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from fastapi.responses import Response
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from . import config
from .json2csv import (
    ConversionError,
    ReadError,
    WriteError,
)
from .models import (
    SessionLocal,
    SettingsModel,
    SettingsUpdate,
    add_recent_file,
    get_recent_file,
    get_settings,
    list_recent_files,
    update_settings,
)
from .session import ConverterSession

# Setup logging
logger = logging.getLogger(__name__)
router = APIRouter()

converter_session = ConverterSession()

# ------------------------------------------
# Dependencies
# ------------------------------------------
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_session() -> ConverterSession:
    return converter_session


def to_http_error(error: ConversionError) -> HTTPException:
    """Map a converter error to the HTTP status shown to the UI"""
    if isinstance(error, ReadError):
        return HTTPException(status_code=404 if error.not_found else 400, detail=error.message)
    if isinstance(error, WriteError):
        return HTTPException(status_code=500, detail=error.message)
    return HTTPException(status_code=400, detail=error.message)


class FileRequest(BaseModel):
    model_config = ConfigDict(extra='forbid')

    path: str = Field(..., min_length=1, description="Local file path")


class ColumnSelection(BaseModel):
    columns: List[str] = Field(default_factory=list, description="Columns to export, in order; empty means all")


class ColumnToggle(BaseModel):
    column: str = Field(..., min_length=1)
    selected: bool


def content_disposition(filename: str) -> str:
    """Attachment header that survives non-latin-1 and quote characters in the name"""
    quoted = quote(filename)
    if quoted != filename:
        return f"attachment; filename*=utf-8''{quoted}"
    return f'attachment; filename="{filename}"'


def _loaded_response(session: ConverterSession) -> dict:
    return {
        **session.snapshot(),
        "all_columns": list(session.all_columns),
        "selected_columns": list(session.selected_columns),
    }

# ------------------------------------------
# Status & Settings Endpoints
# ------------------------------------------

@router.get("/status")
def read_status(session: ConverterSession = Depends(get_session)):
    return session.snapshot()


@router.get("/settings", response_model=SettingsModel)
def read_settings(db: Session = Depends(get_db)):
    return get_settings(db).model_dump()


@router.put("/settings", response_model=SettingsModel)
def write_settings(update: SettingsUpdate, db: Session = Depends(get_db)):
    return update_settings(db, update).model_dump()

# ------------------------------------------
# File Endpoints
# ------------------------------------------

@router.post("/files/open")
def open_file(request: FileRequest, db: Session = Depends(get_db),
              session: ConverterSession = Depends(get_session)):
    try:
        session.load_file(request.path)
    except ConversionError as e:
        raise to_http_error(e)
    add_recent_file(db, session.json_path)
    return _loaded_response(session)


@router.post("/files/upload")
def upload_file(file: UploadFile = File(...), db: Session = Depends(get_db),
                session: ConverterSession = Depends(get_session)):
    """Store an uploaded JSON file under UPLOAD_DIR and open it like a local file"""
    filename = Path(file.filename or "").name or "upload.json"
    upload_dir = Path(config.UPLOAD_DIR) / uuid.uuid4().hex
    upload_dir.mkdir(parents=True, exist_ok=True)
    stored = upload_dir / filename

    try:
        with stored.open("wb") as buffer:
            shutil.copyfileobj(file.file, buffer)
    finally:
        file.file.close()

    try:
        session.load_file(str(stored))
    except ConversionError as e:
        shutil.rmtree(upload_dir, ignore_errors=True)
        raise to_http_error(e)
    add_recent_file(db, session.json_path)
    return _loaded_response(session)


@router.post("/files/save")
def save_file(request: FileRequest, session: ConverterSession = Depends(get_session)):
    try:
        path = session.save(request.path)
    except ConversionError as e:
        raise to_http_error(e)
    return {"csv_path": path, "status": session.status}


@router.get("/download")
def download_csv(session: ConverterSession = Depends(get_session)):
    if session.csv_content is None:
        raise HTTPException(status_code=404, detail="No CSV content to download")
    filename = Path(session.json_path or "converted").with_suffix(".csv").name
    return Response(
        content=session.csv_content,
        media_type="text/csv",
        headers={"Content-Disposition": content_disposition(filename)}
    )

# ------------------------------------------
# Recent Files Endpoints
# ------------------------------------------

@router.get("/recent-files")
def read_recent_files(db: Session = Depends(get_db)):
    return {"recent_files": [entry.model_dump() for entry in list_recent_files(db)]}


@router.post("/recent-files/{file_id}/open")
def open_recent_file(file_id: int, db: Session = Depends(get_db),
                     session: ConverterSession = Depends(get_session)):
    entry = get_recent_file(db, file_id)
    if not entry:
        raise HTTPException(status_code=404, detail="Recent file not found")
    try:
        session.load_file(entry.path)
    except ConversionError as e:
        raise to_http_error(e)
    return _loaded_response(session)

# ------------------------------------------
# Column & Conversion Endpoints
# ------------------------------------------

@router.get("/columns")
def read_columns(session: ConverterSession = Depends(get_session)):
    return {"all_columns": list(session.all_columns), "selected_columns": list(session.selected_columns)}


@router.put("/columns")
def write_columns(selection: ColumnSelection, session: ConverterSession = Depends(get_session)):
    try:
        selected = session.set_selected_columns(selection.columns)
    except ConversionError as e:
        raise to_http_error(e)
    return {"all_columns": list(session.all_columns), "selected_columns": selected}


@router.post("/columns/toggle")
def toggle_column(toggle: ColumnToggle, session: ConverterSession = Depends(get_session)):
    try:
        selected = session.toggle_column(toggle.column, toggle.selected)
    except ConversionError as e:
        raise to_http_error(e)
    return {"all_columns": list(session.all_columns), "selected_columns": selected}


@router.post("/convert")
def convert(db: Session = Depends(get_db), session: ConverterSession = Depends(get_session)):
    settings = SettingsModel.model_validate(get_settings(db))
    try:
        session.convert(settings)
    except ConversionError as e:
        raise to_http_error(e)
    return {
        **session.snapshot(),
        "columns": list(session.columns),
        "preview": session.preview_data,
    }


@router.get("/preview")
def read_preview(search: Optional[str] = Query(None),
                 limit: Optional[int] = Query(None, ge=0),
                 db: Session = Depends(get_db),
                 session: ConverterSession = Depends(get_session)):
    if limit is None:
        limit = get_settings(db).max_preview_rows
    return {"columns": list(session.columns), "rows": session.preview(search=search, limit=limit)}
