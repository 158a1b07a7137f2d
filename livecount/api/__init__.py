"""
HTTP API Package
================

FastAPI application for livecount. See `livecount.api.main`.
"""
