"""
Pydantic models for settings and API responses.
"""
