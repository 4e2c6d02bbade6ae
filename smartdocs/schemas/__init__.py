"""
Pydantic Schemas for request/response validation
"""
