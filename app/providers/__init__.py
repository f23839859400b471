# FILE: app/providers/__init__.py
"""AI completion provider adapters and the ordered provider registry."""
