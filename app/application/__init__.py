"""Application layer: DTOs and services.

Services own their unit of work (Database session or transaction) and
talk to infrastructure through repositories, the memo cache and the
external HTTP clients.
"""
