"""auth/ -- Credential lifecycle and access-control gate for Pressroom.

Layer rule: auth/ imports only stdlib, third-party libraries, and core/.
It does NOT import from api/ or articles/.
api/ imports from auth/, not the other way around.
"""
