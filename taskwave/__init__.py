"""
taskwave - wave planning and export verification for parallel task execution.

Groups dependent tasks into execution waves and confirms, by parsing source
files, that the exports a task claims to have created really exist.
"""

__version__ = "0.1.0"

from taskwave.scheduling.wave_scheduler import WaveScheduler
from taskwave.verification.verifier import ExportVerifier

__all__ = ["ExportVerifier", "WaveScheduler", "__version__"]
