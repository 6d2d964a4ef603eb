"""TinyVector – in-memory vector similarity search.

A registry of named, fixed-dimension embedding collections with exact
top-k nearest-neighbour retrieval under Euclidean, cosine and dot
product metrics.
"""

__version__ = "0.1.0"
