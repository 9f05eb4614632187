"""Medic: AI diagnosis for failed builds.

When a build fails, Medic sends the failure to a language model and
types the model's remediation advice out to the console. If the model
cannot be reached it prints provider-specific troubleshooting steps and
the original error instead.
"""

from medic.adapters.host.plugin import BuildFailure, DiagnosisPlugin
from medic.config import DoctorOptions

__version__ = "0.1.0"

__all__ = ["BuildFailure", "DiagnosisPlugin", "DoctorOptions"]
