"""
Main Layer Package

Composition root: settings, the dependency injection container and the
HTTP and command line entry points.
"""
