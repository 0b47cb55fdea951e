#!/usr/bin/env python3

import csv
import io
import json
import logging
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .errors import (
    ConversionError,
    CSVGenerationError,
    MalformedJSONError,
    ReadError,
    UnknownColumnError,
    UnsupportedJSONError,
    WriteError,
)

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float, str], None]


class Delimiter(str, Enum):
    COMMA = ","
    SEMICOLON = ";"
    TAB = "\t"

    @classmethod
    def parse(cls, text: str) -> "Delimiter":
        """Accept the delimiter character, its name, or the escape '\\t'"""
        if text in ("\\t", "\t"):
            return cls.TAB
        for member in cls:
            if text == member.value or text.lower() == member.name.lower():
                return member
        raise ValueError(f"Unsupported delimiter: {text!r}")


class CSVOptions(BaseModel):
    model_config = ConfigDict(extra='forbid')

    delimiter: Delimiter = Delimiter.COMMA
    include_headers: bool = True
    quote_fields: bool = True
    columns: List[str] = Field(default_factory=list, description="Output columns; empty means all")
    max_preview_rows: int = Field(default=100, ge=0)


class ConversionResult(BaseModel):
    columns: List[str]
    all_columns: List[str]
    rows: List[List[str]]
    csv_text: str
    preview: List[List[str]]

    @property
    def row_count(self) -> int:
        return len(self.rows)


class ConversionProgress(BaseModel):
    status: str = ""
    progress: float = Field(default=0.0, ge=0.0, le=1.0)
    is_converting: bool = False


def parse_json(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedJSONError(str(e))


def json_type_name(value: Any) -> str:
    """Map a decoded value back to its JSON type name"""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def scalar_to_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    # bools and numbers keep their JSON spelling (true, 1.5, 1e+20)
    return json.dumps(value)


def flatten_record(obj: Dict[str, Any]) -> Dict[str, str]:
    """
    Flatten a JSON object into dotted/bracketed key paths.

    {"a": {"b": 1}, "c": [2, {"d": null}]} becomes
    {"a.b": "1", "c[0]": "2", "c[1].d": ""}

    Empty containers are kept at their own path as "{}" and "[]".
    """
    output: Dict[str, str] = {}

    def emit(path: str, text: str) -> None:
        if path in output:
            logger.warning(f"Duplicate key path {path!r}: keeping the later value")
        output[path] = text

    def walk(value: Any, prefix: str) -> None:
        if isinstance(value, dict):
            if not value and prefix:
                emit(prefix, "{}")
                return
            for key, inner in value.items():
                walk(inner, f"{prefix}.{key}" if prefix else key)
            return
        if isinstance(value, list):
            if not value:
                emit(prefix, "[]")
                return
            for idx, inner in enumerate(value):
                walk(inner, f"{prefix}[{idx}]")
            return
        emit(prefix, scalar_to_text(value))

    walk(obj, "")
    return output


def extract_records(data: Any) -> List[Dict[str, Any]]:
    """Return the objects to convert: one for an object, the object elements of an array"""
    if isinstance(data, dict):
        return [data]
    if isinstance(data, list):
        records = []
        for index, item in enumerate(data):
            if isinstance(item, dict):
                records.append(item)
            else:
                logger.warning(f"Skipping array element {index}: expected an object, got {json_type_name(item)}")
        return records
    raise UnsupportedJSONError(json_type_name(data))


def collect_columns(flat_records: List[Dict[str, str]]) -> List[str]:
    """Union of keys across all records in first-seen order"""
    columns: Dict[str, None] = {}
    for record in flat_records:
        for key in record:
            columns.setdefault(key, None)
    return list(columns)


def select_columns(all_columns: List[str], requested: Optional[List[str]]) -> List[str]:
    if not requested:
        return list(all_columns)
    selected = list(dict.fromkeys(requested))
    available = set(all_columns)
    unknown = [c for c in selected if c not in available]
    if unknown:
        raise UnknownColumnError(unknown)
    return selected


def write_csv(columns: List[str], rows: List[List[str]], options: CSVOptions) -> str:
    """Serialize rows to CSV text using the delimiter and quoting from options"""
    if not columns:
        return ""

    buffer = io.StringIO()
    if options.quote_fields:
        writer = csv.writer(buffer, delimiter=options.delimiter.value, lineterminator="\n",
                            quoting=csv.QUOTE_MINIMAL)
    else:
        writer = csv.writer(buffer, delimiter=options.delimiter.value, lineterminator="\n",
                            quoting=csv.QUOTE_NONE, escapechar="\\")

    def write_row(row: List[str]) -> None:
        # QUOTE_NONE refuses a record made of one empty field; write a bare line instead
        if not options.quote_fields and len(row) == 1 and row[0] == "":
            writer.writerow([])
        else:
            writer.writerow(row)

    try:
        if options.include_headers:
            write_row(columns)
        for row in rows:
            write_row(row)
    except csv.Error as e:
        raise CSVGenerationError(str(e))
    return buffer.getvalue()


def build_preview(columns: List[str], rows: List[List[str]], include_headers: bool,
                  max_rows: int, search: Optional[str] = None) -> List[List[str]]:
    """Header (if enabled) followed by at most max_rows data rows matching search"""
    if search:
        needle = search.lower()
        rows = [row for row in rows if any(needle in cell.lower() for cell in row)]
    preview = [list(columns)] if include_headers and columns else []
    preview.extend(list(row) for row in rows[:max(0, max_rows)])
    return preview


class JSON2CSV:
    def __init__(self, options: Optional[CSVOptions] = None):
        self.options = options or CSVOptions()
        self.fieldnames: List[str] = []
        self.all_columns: List[str] = []

    def _flatten_data(self, data: Any) -> List[Dict[str, str]]:
        """Convert JSON data into a flat list of dictionaries"""
        return [flatten_record(record) for record in extract_records(data)]

    def discover_columns(self, text: str) -> List[str]:
        """Return every column the document would produce, in output order"""
        self.all_columns = collect_columns(self._flatten_data(parse_json(text)))
        return list(self.all_columns)

    def convert_text(self, text: str, options: Optional[CSVOptions] = None,
                     progress: Optional[ProgressCallback] = None) -> ConversionResult:
        """Convert JSON text to CSV

        Args:
            text: JSON document, a single object or an array of objects
            options: Overrides the options given to the constructor
            progress: Called with (fraction, status) as the conversion advances

        Returns:
            ConversionResult with the CSV text and the preview grid
        """
        options = options or self.options

        def report(fraction: float, status: str) -> None:
            if progress is not None:
                progress(fraction, status)

        report(0.2, "Parsing JSON...")
        data = parse_json(text)

        report(0.4, "Converting to CSV...")
        records = extract_records(data)
        flat_records = []
        for i, record in enumerate(records):
            flat_records.append(flatten_record(record))
            report(0.4 + (i + 1) / len(records) * 0.5, "Converting to CSV...")

        self.all_columns = collect_columns(flat_records)
        self.fieldnames = select_columns(self.all_columns, options.columns)
        rows = [[record.get(c, "") for c in self.fieldnames] for record in flat_records]

        report(0.9, "Finalizing...")
        csv_text = write_csv(self.fieldnames, rows, options)
        preview = build_preview(self.fieldnames, rows, options.include_headers, options.max_preview_rows)

        logger.info(f"Converted {len(rows)} records into {len(self.fieldnames)} columns")
        report(1.0, "Conversion completed successfully")
        return ConversionResult(
            columns=self.fieldnames,
            all_columns=self.all_columns,
            rows=rows,
            csv_text=csv_text,
            preview=preview,
        )

    def convert_file(self, input_file: str, output_file: Optional[str] = None,
                     options: Optional[CSVOptions] = None) -> str:
        """Convert a JSON file to CSV format

        Args:
            input_file: Path to the input JSON file
            output_file: Optional path to the output CSV file. If not provided,
                        will use the same name as input file with .csv extension

        Returns:
            Path to the created CSV file
        """
        if not output_file:
            output_file = str(Path(input_file).with_suffix('.csv'))

        text = read_json_file(input_file)
        result = self.convert_text(text, options)
        write_csv_file(output_file, result.csv_text)
        return output_file


def read_json_file(path: str) -> str:
    try:
        with open(path, 'r', encoding='utf-8-sig') as f:
            return f.read()
    except (OSError, UnicodeDecodeError) as e:
        logger.error(f"Error reading {path}: {e}")
        raise ReadError(str(path), e)


def write_csv_file(path: str, csv_text: str) -> None:
    try:
        with open(path, 'w', encoding='utf-8', newline='') as f:
            f.write(csv_text)
    except OSError as e:
        logger.error(f"Error writing {path}: {e}")
        raise WriteError(str(path), e)


def main(argv=None):
    import argparse
    parser = argparse.ArgumentParser(description='Convert JSON files to CSV format')
    parser.add_argument('input', help='Input JSON file')
    parser.add_argument('-o', '--output', help='Output CSV file (optional)')
    parser.add_argument('--delimiter', default='comma', choices=['comma', 'semicolon', 'tab'],
                        help='Field delimiter (default: comma)')
    parser.add_argument('--no-header', action='store_true', help='Do not write the header row')
    parser.add_argument('--no-quote', action='store_true', help='Never quote fields')
    parser.add_argument('--columns', help='Comma-separated columns to output, in order')
    parser.add_argument('--list-columns', action='store_true',
                        help='Print the columns found in the input and exit')
    parser.add_argument('--preview', type=int, metavar='N',
                        help='Print the first N rows instead of writing a file')
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.WARNING)

    options = CSVOptions(
        delimiter=Delimiter.parse(args.delimiter),
        include_headers=not args.no_header,
        quote_fields=not args.no_quote,
        columns=[c.strip() for c in args.columns.split(',') if c.strip()] if args.columns else [],
    )
    converter = JSON2CSV(options)

    try:
        if args.list_columns:
            for column in converter.discover_columns(read_json_file(args.input)):
                print(column)
            return 0

        if args.preview is not None:
            result = converter.convert_text(read_json_file(args.input))
            preview = build_preview(result.columns, result.rows, options.include_headers, args.preview)
            for row in preview:
                print(options.delimiter.value.join(row))
            return 0

        output = converter.convert_file(args.input, args.output)
        print(f"Successfully converted {args.input} to {output}")
        return 0

    except ConversionError as e:
        print(f"Error: {e.message}")
        return 1


if __name__ == '__main__':
    raise SystemExit(main())
