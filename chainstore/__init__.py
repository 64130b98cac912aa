"""
chainstore: block and transaction entities and the codecs that move them
in and out of storage.
"""

__version__ = "0.1.0"
