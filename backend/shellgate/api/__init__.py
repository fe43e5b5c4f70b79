"""
Shellgate - API
"""
