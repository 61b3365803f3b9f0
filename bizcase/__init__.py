"""Business-case and market-analysis calculation engine.

This package contains the projection, metrics, market-volume, cross-tool
sourcing and merge logic behind the business-case authoring tool. It has ZERO
dependency on any UI framework; presentation layers call in with plain data
and receive plain data back.
"""

__version__ = "0.3.0"
