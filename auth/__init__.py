"""auth/ -- Credential, token and session management for the session auth service.

Layer rule: auth/ imports only stdlib, third-party libraries and core/.
It does NOT import from api/. api/ imports from auth/, not the other way around.
The one exception is auth/dependencies.py, which speaks FastAPI because it is
part of the dependency injection system.
"""
