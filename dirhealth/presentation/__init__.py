"""
Presentation Layer Package

This package contains the presentation layer components,
which are responsible for handling HTTP requests and responses.
"""

from dirhealth.presentation import controllers

__all__ = ["controllers"]
