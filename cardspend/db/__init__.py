"""Async SQLAlchemy persistence: models, repositories and the unit of work."""
