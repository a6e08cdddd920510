"""
Helpers
"""
