"""Domain models and errors.

Pure data structures; no HTTP, CLI, or filesystem access lives here.
"""
