"""
Allow ``python -m backend.worker`` to process one pending job.

This thin wrapper delegates to ``backend.worker.main.run_once()``.
"""

import sys

from backend.worker.main import run_once

sys.exit(run_once())
