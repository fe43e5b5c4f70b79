"""
Shellgate - API v1
"""
