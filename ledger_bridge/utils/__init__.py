"""
Utilities.
"""
