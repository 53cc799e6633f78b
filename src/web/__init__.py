"""Web layer: FastAPI application, routers and dependencies."""
