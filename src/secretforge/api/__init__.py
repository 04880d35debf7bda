"""HTTP API for secretforge."""
