"""Fake/mock implementations of core ports for testing.

These in-memory implementations allow core domain logic to be tested
without external dependencies:

- FakeModelPort: Canned model replies or configured failures
- FakeModelSource: Supplies a model, or fails like the factory would
- SyncModel: User-style model object with a synchronous invoke
- RecordingWriter: Captured output for assertion
"""

from .model import FakeModelPort, FakeModelSource, SyncModel
from .output import RecordingWriter

__all__ = [
    "FakeModelPort",
    "FakeModelSource",
    "RecordingWriter",
    "SyncModel",
]
