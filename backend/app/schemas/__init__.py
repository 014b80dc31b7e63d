"""
MeMantra Backend — Request/Response Schemas
=============================================

Pydantic models defining the API contract with the mobile client. Every
response uses the envelope {"status", "message"?, "data"?}; each route
declares the exact envelope it returns as its `response_model`.
"""
