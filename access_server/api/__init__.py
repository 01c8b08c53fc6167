"""
HTTP API modules
"""
