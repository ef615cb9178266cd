"""
Meseca voice gateway and local backend supervisor.
"""

__version__ = "1.0.0"
