"""HTTP surface — FastAPI application and routes."""
