"""HTTP layer.

This package contains the Starlette/FastAPI adapters (middleware, fault
barrier, error handling, settings parsing, template/session shims).

The ASGI entrypoint lives in `meadowlark.app`.
"""
