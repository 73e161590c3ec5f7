"""
Utility modules for mstodo-sync.
"""
