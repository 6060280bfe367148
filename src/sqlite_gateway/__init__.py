"""
SQLite Gateway - serialized single-owner access to an embedded SQL database

One worker per logical connection owns the engine handle and runs every
request to completion, in arrival order. Structured operations are turned
into escaped SQL text or bound parameters, and engine replies are turned
back into structured results.
"""

__version__ = "0.1.0"
__author__ = "Systems Engineering Portfolio"
