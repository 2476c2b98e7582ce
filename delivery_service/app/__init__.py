"""FastAPI application: factory, routers, lifespan hooks."""
