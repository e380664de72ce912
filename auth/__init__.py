"""auth/ -- Credential, session, and authorship package for the job board.

Layer rule: auth/ imports only stdlib, third-party libraries, and core/.
It does NOT import from api/, board/, or notify/.
api/ imports from auth/, not the other way around. The one FastAPI-aware
module is auth/dependencies.py.
"""
