"""Core interfaces.

Contracts (Protocol) implemented by concrete adapters.
"""
