"""notify/ -- Outgoing mail for the job board.

Layer rule: notify/ may import core/config, auth/models and auth/errors (the
Notifier contract lives in auth/reset.py). It does NOT import from api/ or
board/.
"""
