from .sentinel import NotReady, NotSet

__all__ = ["NotReady", "NotSet"]
