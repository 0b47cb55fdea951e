"""
JSON to CSV Converter Package

This package provides tools for converting JSON data to CSV format.
"""

from .errors import (
    ConversionError,
    CSVGenerationError,
    MalformedJSONError,
    NoContentError,
    ReadError,
    UnknownColumnError,
    UnsupportedJSONError,
    WriteError,
)
from .json2csv import (
    JSON2CSV,
    ConversionProgress,
    ConversionResult,
    CSVOptions,
    Delimiter,
    build_preview,
    collect_columns,
    extract_records,
    flatten_record,
    parse_json,
    read_json_file,
    select_columns,
    write_csv,
    write_csv_file,
)

__all__ = [
    'JSON2CSV',
    'ConversionProgress',
    'ConversionResult',
    'CSVOptions',
    'Delimiter',
    'build_preview',
    'collect_columns',
    'extract_records',
    'flatten_record',
    'parse_json',
    'read_json_file',
    'select_columns',
    'write_csv',
    'write_csv_file',
    'ConversionError',
    'CSVGenerationError',
    'MalformedJSONError',
    'NoContentError',
    'ReadError',
    'UnknownColumnError',
    'UnsupportedJSONError',
    'WriteError',
]
