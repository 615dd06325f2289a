from .formatter import shout

__all__ = ["shout"]
