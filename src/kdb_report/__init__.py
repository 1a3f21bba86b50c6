"""
kdb_report: read-only analyzer for Heimdal-style KDC database dumps.

Parses a `dump` of the principal database (one record per line),
builds an in-memory model of every principal, and prints aggregate
reports: encryption-type usage, flag inventories, expiry listings
and summary counts.

Any malformed record aborts the whole run; there is no partial result.
"""

__version__ = "0.1.0"
