# Domain models for operations, tools and action results
