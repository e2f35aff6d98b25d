"""auth/ -- Staff authentication and role-based authorization for the POS terminal.

Layer rule: auth/ imports only stdlib, third-party libraries, and core.config.
It does NOT import from main. main.py imports from auth/, not the other way around.
"""
