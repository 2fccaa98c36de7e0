"""
Tubely API package.

Package Structure:
    - deps.py: dependency providers shared by the route modules
    - routes/: endpoint modules and the router aggregator
"""
