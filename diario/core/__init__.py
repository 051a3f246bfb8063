"""App wiring: logging, lifespan, middleware and error handlers."""
