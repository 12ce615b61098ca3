"""Internal modules for the n8n SDK.

WARNING: These modules are implementation details of N8nClient and may change
without notice. Import from the top-level package instead.

Modules:
    http - httpx client factory, request encoding and reply decoding
    mapping - Best-effort reply -> typed result mapping
    resilience - Circuit breaker and retry policy
    tracking - Request tracker for async correlation
"""
