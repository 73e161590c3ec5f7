"""
mstodo-sync - bidirectional task sync between an Obsidian vault and Microsoft To Do.
"""

__version__ = "0.1.0"
