"""
FastAPI API package for the image relay.

Exposes:
- `main`     : `create_app` factory and the default `app` with the upload,
               region-match, diagnostics and static-file routes.
- `settings` : Environment-driven `Settings`.
- `schemas`  : HTTP response models.
"""
