"""
Shared utilities: error taxonomy and logging setup.
"""
