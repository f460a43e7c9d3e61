"""CareComply DB — SQLAlchemy models and session management for the stores."""
