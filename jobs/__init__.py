"""
Background workers and scheduling.
"""
