"""
Pipeline failures.

All of these are raised synchronously by the stage that detects them and are
never retried; hosts decide how to present them.
"""


class PipelineError(Exception):
    """Base class for every failure raised by the mapping pipeline."""


class EmptyInputError(PipelineError):
    def __init__(self, message: str = "File is empty"):
        super().__init__(message)


class ParseError(PipelineError):
    """Reserved for dialect violations. The parser is lenient and never raises it."""


class NoMappableFieldsError(PipelineError):
    def __init__(self, message: str = "At least one column must be mapped to a target field"):
        super().__init__(message)


class NothingToExportError(PipelineError):
    def __init__(self, message: str = "No data to export"):
        super().__init__(message)


class UnsupportedFormatError(PipelineError):
    def __init__(self, format_id: str):
        self.format_id = format_id
        super().__init__(f"Unsupported export format: {format_id!r}")


class UnknownSourceError(PipelineError):
    def __init__(self, source: str):
        self.source = source
        super().__init__(f"No column named {source!r} in the mapping set")


class UnknownTargetError(PipelineError):
    def __init__(self, target: str):
        self.target = target
        super().__init__(f"Unknown target field: {target!r}")


class RuleFileError(PipelineError):
    pass
