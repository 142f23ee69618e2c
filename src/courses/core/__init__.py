"""Core build logic.

This package contains the domain model of a course project: configuration,
the content tree, rendering of single documents and the build operations.
"""
