"""Core: settings, domain models and the token generation services."""
