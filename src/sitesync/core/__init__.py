"""Core sync engine for sitesync."""
