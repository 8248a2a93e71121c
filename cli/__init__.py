"""
PPM Tool Finder CLI Package

Command-line interface for the tool finder engine.

Usage:
    ppmfind rank --catalog tools.yaml -w security=5 --tag Agile
    ppmfind guided --catalog tools.yaml --answers answers.yaml
    ppmfind questions
"""

__version__ = "0.1.0"

from cli.main import app

__all__ = ["app", "__version__"]
