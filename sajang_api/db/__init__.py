"""Database layer: models, engine, sessions and repositories."""
