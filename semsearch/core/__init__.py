"""
Core module for shared configuration, schemas, and errors.

This module provides foundational components used across the pipeline:
- Configuration management
- Pydantic schemas for data validation
- The pipeline error taxonomy
"""
