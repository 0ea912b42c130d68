"""
wikideceased - marks links to biographies of deceased people.
"""

__version__ = "0.1.0"
