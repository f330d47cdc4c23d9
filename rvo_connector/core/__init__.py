"""Core utilities and shared infrastructure.

- config: Configuration loading and validation
- constants: Endpoints, scopes, namespaces, status codes
- exceptions: Connector exception taxonomy
"""
