"""
API module for HTTP endpoint definitions.

This module defines the FastAPI application and route handlers
for exposing the retrieval pipeline as a web service.
"""
