# Services for operation discovery, tool construction and invocation
