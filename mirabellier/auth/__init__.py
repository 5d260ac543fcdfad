"""Users, session tokens, roles and Discord login."""
