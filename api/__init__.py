"""HTTP API for the Personal Activity Index."""
