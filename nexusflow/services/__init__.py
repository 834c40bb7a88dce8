"""Service layer for operator tooling."""

from .diagnostics import DiagnosticCheck, DiagnosticsReport, run_directory_diagnostics


__all__ = ["DiagnosticCheck", "DiagnosticsReport", "run_directory_diagnostics"]
