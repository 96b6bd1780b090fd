"""
Domain Layer Package

Health classification rules, value objects and collaborator contracts,
free of any framework or infrastructure dependency.
"""

from dirhealth.domain import entities, gateways, ports, services

__all__ = ["entities", "gateways", "ports", "services"]
