"""Endpoint groups mounted by :func:`sitecms.api.app.create_app`."""
