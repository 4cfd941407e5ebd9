# newsdesk/schemas/__init__.py
"""
Pydantic request/response schemas.
"""
