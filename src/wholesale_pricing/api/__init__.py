"""HTTP layer - FastAPI routers over the pricing engine, tier service and channel manager."""
