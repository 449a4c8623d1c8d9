"""
Workflow services - each returns success/failure result dicts
"""
