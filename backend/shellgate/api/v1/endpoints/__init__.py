"""
Shellgate - API v1 Endpoints
"""
