"""
Converter workspace state.

Holds the document the user is working on: the loaded JSON, the generated CSV,
the preview grid and the column selection. Requests are served from a thread
pool, so every mutation happens under the session lock.
"""

import logging
import threading
from pathlib import Path
from typing import List, Optional

from .json2csv import (
    JSON2CSV,
    ConversionError,
    ConversionProgress,
    CSVOptions,
    Delimiter,
    NoContentError,
    UnknownColumnError,
    build_preview,
    read_json_file,
    write_csv_file,
)
from .models import SettingsModel

logger = logging.getLogger(__name__)


def options_from_settings(settings: SettingsModel, columns: Optional[List[str]] = None) -> CSVOptions:
    return CSVOptions(
        delimiter=Delimiter.parse(settings.delimiter),
        include_headers=settings.include_headers,
        quote_fields=settings.quote_fields,
        columns=list(columns or []),
        max_preview_rows=settings.max_preview_rows,
    )


class ConverterSession:
    def __init__(self):
        self._lock = threading.RLock()
        self.converter = JSON2CSV()
        self.json_path: Optional[str] = None
        self.json_content: Optional[str] = None
        self.csv_path: Optional[str] = None
        self.csv_content: Optional[str] = None
        self.preview_data: Optional[List[List[str]]] = None
        self.columns: List[str] = []
        self.rows: List[List[str]] = []
        self.include_headers = True
        self.all_columns: List[str] = []
        self.selected_columns: List[str] = []
        self.status = "Ready"
        self.error_message: Optional[str] = None
        self.progress = ConversionProgress()

    def _fail(self, error: ConversionError, status: str) -> None:
        self.error_message = error.message
        self.status = status
        logger.error(f"{status}: {error.message}")

    def load_file(self, path: str) -> None:
        """Read a JSON file from disk and make it the current document"""
        path = str(Path(path).expanduser())
        with self._lock:
            self.json_path = path
            try:
                text = read_json_file(path)
            except ConversionError as e:
                self._fail(e, "Error loading file")
                raise
            self._set_content(text)

    def load_text(self, name: str, text: str) -> None:
        """Make uploaded JSON text the current document"""
        with self._lock:
            self.json_path = name
            self._set_content(text)

    def _set_content(self, text: str) -> None:
        self.json_content = text
        self.csv_content = None
        self.csv_path = None
        self.preview_data = None
        self.columns = []
        self.rows = []
        self.error_message = None
        self.progress = ConversionProgress()

        # Column discovery needs a parsable document; a broken one is still
        # loaded so converting it reports the parse error.
        try:
            self.all_columns = self.converter.discover_columns(text)
        except ConversionError as e:
            logger.warning(f"Could not discover columns in {self.json_path}: {e.message}")
            self.all_columns = []
        self.selected_columns = [c for c in self.selected_columns if c in self.all_columns]
        self.status = "JSON file loaded successfully"
        logger.info(f"Loaded {self.json_path} ({len(self.all_columns)} columns)")

    def set_selected_columns(self, columns: List[str]) -> List[str]:
        with self._lock:
            unknown = [c for c in columns if c not in self.all_columns]
            if unknown:
                raise UnknownColumnError(unknown)
            self.selected_columns = list(dict.fromkeys(columns))
            return list(self.selected_columns)

    def toggle_column(self, column: str, selected: bool) -> List[str]:
        with self._lock:
            if column not in self.all_columns:
                raise UnknownColumnError([column])
            if selected and column not in self.selected_columns:
                self.selected_columns.append(column)
            elif not selected:
                self.selected_columns = [c for c in self.selected_columns if c != column]
            return list(self.selected_columns)

    def _on_progress(self, fraction: float, status: str) -> None:
        self.progress = ConversionProgress(status=status, progress=fraction, is_converting=fraction < 1.0)

    def convert(self, settings: SettingsModel) -> None:
        """Convert the current document using the given settings and column selection"""
        with self._lock:
            if self.json_content is None:
                error = NoContentError()
                self._fail(error, error.message)
                raise error

            self.progress = ConversionProgress(status="Starting conversion...", is_converting=True)
            options = options_from_settings(settings, self.selected_columns)
            try:
                result = self.converter.convert_text(self.json_content, options, progress=self._on_progress)
            except ConversionError as e:
                self.progress = ConversionProgress(status=e.message)
                self._fail(e, e.message)
                raise

            self.csv_content = result.csv_text
            self.columns = result.columns
            self.rows = result.rows
            self.include_headers = options.include_headers
            self.all_columns = result.all_columns
            self.preview_data = result.preview
            self.error_message = None
            self.status = "Conversion completed successfully"

    def preview(self, search: Optional[str] = None, limit: Optional[int] = None) -> List[List[str]]:
        """Preview rows of the last conversion, optionally filtered by a search query"""
        with self._lock:
            if self.csv_content is None:
                return []
            max_rows = limit if limit is not None else len(self.rows)
            return build_preview(self.columns, self.rows, self.include_headers, max_rows, search)

    def save(self, path: str) -> str:
        path = str(Path(path).expanduser())
        with self._lock:
            if self.csv_content is None:
                error = NoContentError("No CSV content to save")
                self._fail(error, "Error saving file")
                raise error
            try:
                write_csv_file(path, self.csv_content)
            except ConversionError as e:
                self._fail(e, "Error saving file")
                raise
            self.csv_path = path
            self.error_message = None
            self.status = "CSV file saved successfully"
            logger.info(f"Saved CSV to {path}")
            return path

    def snapshot(self) -> dict:
        # No lock: status polls must not wait for a running conversion.
        return {
            "status": self.status,
            "error_message": self.error_message,
            "json_path": self.json_path,
            "csv_path": self.csv_path,
            "has_content": self.json_content is not None,
            "has_csv": self.csv_content is not None,
            "row_count": len(self.rows),
            "progress": self.progress.model_dump(),
        }
