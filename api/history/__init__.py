"""
Per-user search history.
"""
