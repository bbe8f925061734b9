"""Study Buddy API package.

This package exposes the service, repository and validation modules used
by the FastAPI application. Individual modules contain the concrete
implementations and documentation.
"""
