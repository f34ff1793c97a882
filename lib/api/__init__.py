"""
Kult Background Jobs - HTTP Trigger Module

FastAPI application exposing the background job processor to the external
scheduler.

Usage:
    uvicorn lib.api.server:app --host 0.0.0.0 --port 8001
"""
