"""
Core app for the workflow service.

Provides shared error handling, request tracing, role permissions, metrics
and health checks.
"""
