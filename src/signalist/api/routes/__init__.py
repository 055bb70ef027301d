"""Domain routers."""
