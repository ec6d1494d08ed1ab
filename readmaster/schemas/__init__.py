# readmaster/schemas/__init__.py
"""
Schemas package
Only the shared envelopes are re-exported; import feature schemas directly.
"""

from .commons_schemas import ErrorResponse, SuccessResponse
