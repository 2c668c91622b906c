# Middleware package init
"""
Cross-cutting request handling.

Order (outermost first):
    RequestIDMiddleware → RequestLoggingMiddleware → GZip → CORS → router

The request ID is assigned before the access log line is written, so both
the log line and any error body carry the same ID.
"""
