"""
Pydantic request/response schemas for the Training Portal API.
"""
