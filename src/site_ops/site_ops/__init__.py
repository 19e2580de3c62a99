"""Construction site operations package.

Organized by feature modules (users, sites, assignments, attendance, payroll,
materials, documents, ...) with a thin Flask controller layer on top of
service/repository layers.
"""
