"""Order persistence: the repository interface and its Django ORM implementation."""
