"""HTTP delivery layer (FastAPI)."""
