from .removebg import RemoveBgClient, create_client

__all__ = ["RemoveBgClient", "create_client"]
