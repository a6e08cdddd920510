"""
Command-line maintenance scripts
"""
