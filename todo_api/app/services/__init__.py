"""
Service layer.

Services own the SQL for their domain and return schema objects.  They
raise the typed errors from ``core.exceptions`` and leave HTTP status
mapping to the endpoints.
"""
