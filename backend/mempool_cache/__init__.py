"""Redis-backed write-through cache for a node's mempool and recent blocks"""

__version__ = "0.1.0"
