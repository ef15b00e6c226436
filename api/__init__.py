"""api/ -- HTTP boundary for AuthGate (FastAPI)."""
