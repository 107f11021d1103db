"""
Shared utilities for the alarm automation functions
"""
