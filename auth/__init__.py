"""auth/ -- Credential verification and token lifecycle for the auth service.

Layer rule: auth/ imports only stdlib + third-party libraries, plus core/
for the single TokenConfig.from_settings() bridge.
It does NOT import from api/. api/ imports from auth/, not the other way around.
"""
