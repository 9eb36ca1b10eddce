"""FastAPI application package for reseller order settlement."""
