"""In-memory key-value server with array, red-black tree and hash table stores, a client and a benchmark."""

__version__ = "0.1.0"

__all__ = ["array", "bench", "client", "hash", "protocol", "rbtree", "server"]