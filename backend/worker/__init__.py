"""
Kult Background Job Worker Package
==================================

Single-job-per-invocation processing for the ``background_jobs`` queue.

This package contains:
- ``dispatcher.py`` -- Claim one job, run its handler, record the outcome
- ``registry.py``   -- Closed job-type -> handler mapping
- ``handlers.py``   -- One coroutine per job type
- ``alerts.py``     -- Alerting when a completion write is lost
- ``main.py``       -- One-shot command-line runner (``python -m backend.worker``)

The HTTP trigger in ``lib/api/routers/background_jobs.py`` drives the same
dispatcher once per scheduler call.
"""
