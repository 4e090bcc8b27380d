"""Replicate Bridge — FastAPI REST API layer.

This package contains the FastAPI application and the Pydantic request
models.

Modules
-------
main
    Application factory, route handlers, error translation and the
    ``main()`` CLI entry point.
models
    Lenient Pydantic models for the ``POST /config`` and ``POST /generate``
    request bodies.
"""
