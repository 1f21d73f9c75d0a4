"""Infrastructure layer for HealthSafe Vault.

Concrete services that the domain reaches through ports (encryption), plus
settings and logging configuration.
"""
