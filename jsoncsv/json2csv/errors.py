"""
Exceptions raised by the JSON to CSV converter.

Every error carries a ``message`` that is safe to show to the user as-is.
"""


class ConversionError(Exception):
    """Base class for all converter errors"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class MalformedJSONError(ConversionError):
    """The input text is not valid JSON"""

    def __init__(self, detail: str):
        super().__init__(f"JSON parsing error: {detail}")
        self.detail = detail


class UnsupportedJSONError(ConversionError):
    """The top-level JSON value is neither an object nor an array"""

    def __init__(self, type_name: str):
        super().__init__(
            f"Unsupported JSON structure: expected an object or an array of objects, got {type_name}"
        )
        self.type_name = type_name


class UnknownColumnError(ConversionError):
    def __init__(self, columns):
        self.columns = list(columns)
        super().__init__(f"Unknown column(s): {', '.join(self.columns)}")


class NoContentError(ConversionError):
    def __init__(self, message: str = "No JSON content loaded"):
        super().__init__(message)


class CSVGenerationError(ConversionError):
    def __init__(self, detail: str):
        super().__init__(f"CSV generation error: {detail}")


class ReadError(ConversionError):
    """Reading the JSON input file failed"""

    def __init__(self, path: str, error: Exception):
        super().__init__(f"Failed to read JSON file: {error}")
        self.path = path
        self.not_found = isinstance(error, FileNotFoundError)


class WriteError(ConversionError):
    """Writing the CSV output file failed"""

    def __init__(self, path: str, error: Exception):
        super().__init__(f"Failed to save CSV file: {error}")
        self.path = path
