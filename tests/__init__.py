"""
Test suite for mstodo-sync.

Unit tests for the parser, vault store, Graph gateway, resolver and
sync engine, plus command and CLI tests against in-memory or mocked
Microsoft To Do services.
"""
