"""board/ -- Vacancy postings and the candidates who apply to them.

Layer rule: board/ imports stdlib, third-party libraries, core/, and the
engine helpers and errors from auth/store and auth/errors. It does NOT import
from api/ or notify/.
"""
