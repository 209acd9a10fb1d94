"""
Infrastructure Components

Foundational services for the HTTP-RPC client:
- networking: HTTP transport and the I/O reactor
- logging: structured logging with pluggable backends
- exceptions: error taxonomy
"""
