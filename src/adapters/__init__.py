"""Adapters: httpx client and the two calls made against the local node."""
