# Example API routers
