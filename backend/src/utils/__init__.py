"""
Helper utilities
"""
