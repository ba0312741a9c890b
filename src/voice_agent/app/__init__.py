"""FastAPI service surface for the Voice Agent."""
