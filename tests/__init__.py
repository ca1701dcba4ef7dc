"""
Auto MCP Test Suite

Covers the pieces that turn API operations into tools: discovery,
schema generation, argument binding, invocation and the MCP transport,
using the example weather application as the system under test.
"""
