"""Host integration: the plugin object a build tool calls after each build."""

from .plugin import BuildFailure, DiagnosisPlugin

__all__ = ["BuildFailure", "DiagnosisPlugin"]
