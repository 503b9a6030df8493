"""Giftworks image proxy - FastAPI REST API layer.

Modules
-------
main
    Application factory, route handlers, error handlers and the ``main()``
    CLI entry point.
models
    Pydantic request models for every route.
auth
    The ``x-api-key`` gate applied to the image-generation and country routes.
dependencies
    Accessors for the configuration and HTTP client stored on ``app.state``.
"""
