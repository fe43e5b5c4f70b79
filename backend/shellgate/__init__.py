"""
Shellgate - Browser terminal gateway to SSH hosts
"""

__version__ = "1.0.0"
