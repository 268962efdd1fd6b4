"""Reporters, output retrieval and report writing."""

from utrunner.reporting.reporters import (
    CoreReporters,
    Reporter,
    DefaultReporter,
    ReporterFactory,
    reporter_factory,
)
from utrunner.reporting.output_buffer import (
    OutputBuffer,
    TableOutputBuffer,
    LegacyOutputBuffer,
    resolve_output_buffer,
)
from utrunner.reporting.registry import (
    ReporterBinding,
    ReporterRegistry,
    RegisteredReporters,
)
from utrunner.reporting.writer import (
    BindingResult,
    ReportWriter,
    WriteReport,
)

__all__ = [
    "CoreReporters",
    "Reporter",
    "DefaultReporter",
    "ReporterFactory",
    "reporter_factory",
    "OutputBuffer",
    "TableOutputBuffer",
    "LegacyOutputBuffer",
    "resolve_output_buffer",
    "ReporterBinding",
    "ReporterRegistry",
    "RegisteredReporters",
    "BindingResult",
    "ReportWriter",
    "WriteReport",
]
